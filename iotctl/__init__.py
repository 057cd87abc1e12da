"""TCP control server, client, session rules and device controllers for an LED, buzzer and timer board."""

__version__ = "0.1.0"