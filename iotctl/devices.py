"""Controllers for the LED, buzzer and seven-segment timer devices.

Each controller keeps the state of one device and drives it through a
:class:`Gpio` backend. Commands are single characters; a command equal to
the previous one is ignored.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Callable, Optional

from .logger import LogLevel

LogFunc = Optional[Callable[[LogLevel, str], None]]

HIGH = 1
LOW = 0

# LED / light sensor
LED_PIN = 5
CDS_PIN = 6
WEAK = 50
NORMAL = 150
STRONG = 255
PWM_OFF = 255
REPORT_INTERVAL_MS = 10000
LED_STRENGTHS = {"1": (WEAK, "LED:WEAK"), "2": (NORMAL, "LED:NORMAL"), "3": (STRONG, "LED:STRONG")}

# Buzzer
BUZZER_PIN = 29
REST = 0
MELODY = (
    2637, 2637, REST, 2637,
    REST, 2093, 2637, REST,
    3136, REST, REST, REST,
    1568, REST, REST, REST,

    2093, REST, REST, 1568,
    REST, REST, 1319, REST,
    REST, 1760, REST, 1976,
    REST, 1865, 1760, REST,

    1568, 2637, 3136,
    3520, REST, 2794, 3136,
    REST, 2637, REST, 2093,
    2349, 1976, REST, REST,

    2093, REST, REST, 1568,
    REST, REST, 1319, REST,
    REST, 1760, REST, 1976,
    REST, 1865, 1760, REST,

    1568, 2637, 3136,
    3520, REST, 2794, 3136,
    REST, 2637, REST, 2093,
    2349, 1976, REST, REST,
)
DURATIONS = (
    125, 125, 125, 125,
    125, 125, 125, 125,
    250, 125, 125, 125,
    250, 125, 125, 125,

    250, 125, 125, 250,
    125, 125, 250, 125,
    125, 250, 125, 250,
    125, 125, 250, 125,

    125, 125, 250,
    250, 125, 125, 250,
    125, 125, 125, 125,
    250, 250, 125, 125,

    250, 125, 125, 250,
    125, 125, 250, 125,
    125, 250, 125, 250,
    125, 125, 250, 125,

    125, 125, 250,
    250, 125, 125, 250,
    125, 125, 125, 125,
    250, 250, 125, 125,
)
NUM_NOTES = len(MELODY)

# Seven-segment display (BCD driver)
SEGMENT_PINS = (4, 1, 16, 15)
DIGIT_PATTERNS = (
    (0, 0, 0, 0),
    (0, 0, 0, 1),
    (0, 0, 1, 0),
    (0, 0, 1, 1),
    (0, 1, 0, 0),
    (0, 1, 0, 1),
    (0, 1, 1, 0),
    (0, 1, 1, 1),
    (1, 0, 0, 0),
    (1, 0, 0, 1),
)
TICK_MS = 1000
ALARM_TONES = ((2637, 250), (2349, 250))


class Gpio(abc.ABC):
    """Pin-level hardware access used by the controllers."""

    @abc.abstractmethod
    def digital_read(self, pin: int) -> int:
        """Return HIGH or LOW for an input pin."""

    @abc.abstractmethod
    def digital_write(self, pin: int, value: int) -> None:
        """Drive an output pin HIGH or LOW."""

    @abc.abstractmethod
    def pwm_write(self, pin: int, value: int) -> None:
        """Set a software PWM duty value (0-255)."""

    @abc.abstractmethod
    def tone_write(self, pin: int, frequency: int) -> None:
        """Play a square-wave tone; 0 silences the pin."""

    @abc.abstractmethod
    def delay(self, ms: int) -> None:
        """Pause for ``ms`` milliseconds."""


@dataclass
class RecordingGpio(Gpio):
    """A Gpio backend that records every call instead of touching hardware."""

    inputs: dict[int, int] = field(default_factory=dict)
    calls: list[tuple] = field(default_factory=list)
    levels: dict[int, int] = field(default_factory=dict)
    elapsed_ms: int = 0

    def digital_read(self, pin: int) -> int:
        return self.inputs.get(pin, LOW)

    def digital_write(self, pin: int, value: int) -> None:
        self.calls.append(("digital_write", pin, value))
        self.levels[pin] = value

    def pwm_write(self, pin: int, value: int) -> None:
        self.calls.append(("pwm_write", pin, value))
        self.levels[pin] = value

    def tone_write(self, pin: int, frequency: int) -> None:
        self.calls.append(("tone_write", pin, frequency))
        self.levels[pin] = frequency

    def delay(self, ms: int) -> None:
        self.calls.append(("delay", ms))
        self.elapsed_ms += ms


def digit_pattern(digit: int) -> tuple[int, int, int, int]:
    """Return the four BCD pin levels for a decimal digit."""
    if not 0 <= digit <= 9:
        raise ValueError(f"digit out of range: {digit}")
    return DIGIT_PATTERNS[digit]


def _emit(logger: LogFunc, message: str) -> None:
    if logger is not None:
        logger(LogLevel.INFO, message)


class LedController:
    """Dimmable LED that only lights at night, plus day/night reporting."""

    def __init__(self, gpio: Gpio, logger: LogFunc) -> None:
        self.gpio = gpio
        self.logger = logger
        self.on = False
        self.strength = NORMAL
        self.prev_command = "x"
        self._last_report_ms: int | None = None

    def apply_command(self, command: str) -> str | None:
        """Apply a command; return ``"change"`` when it differs from the last one."""
        if command == self.prev_command:
            return None
        self.prev_command = command
        if command == "0":
            self.on = not self.on
            _emit(self.logger, "LED TOGGLE")
        elif command in LED_STRENGTHS:
            self.strength, message = LED_STRENGTHS[command]
            _emit(self.logger, message)
            self.on = True
        return "change"

    def update(self, now_ms: int) -> str | None:
        """Drive the LED from the light sensor; return ``"d"``/``"n"`` when a report is due."""
        night = self.gpio.digital_read(CDS_PIN) == HIGH
        if night and self.on:
            self.gpio.pwm_write(LED_PIN, PWM_OFF - self.strength)
        else:
            self.gpio.pwm_write(LED_PIN, PWM_OFF)

        if self._last_report_ms is None:
            self._last_report_ms = now_ms
            return None
        if now_ms - self._last_report_ms > REPORT_INTERVAL_MS:
            self._last_report_ms = now_ms
            return "n" if night else "d"
        return None


class BuzzerController:
    """Plays the melody note by note while switched on."""

    def __init__(self, gpio: Gpio, logger: LogFunc) -> None:
        self.gpio = gpio
        self.logger = logger
        self.playing = False
        self.index = 0
        self.prev_command = "x"

    def apply_command(self, command: str) -> None:
        """``'1'`` starts playback, ``'0'`` stops it."""
        if command == self.prev_command:
            return
        self.prev_command = command
        if command == "0":
            self.playing = False
            _emit(self.logger, "BUZZER OFF")
        elif command == "1":
            self.playing = True
            _emit(self.logger, "BUZZER ON")

    def step(self) -> None:
        """Play the next note, or rewind once the melody has ended."""
        if not self.playing or not 0 <= self.index < NUM_NOTES:
            self.index = 0
            return
        note = MELODY[self.index]
        duration = DURATIONS[self.index]
        if note == REST:
            self.gpio.tone_write(BUZZER_PIN, 0)
            self.gpio.delay(duration)
        else:
            self.gpio.tone_write(BUZZER_PIN, note)
            self.gpio.delay(int(duration * 0.6))
        self.gpio.tone_write(BUZZER_PIN, 0)
        self.gpio.delay(int(duration * 0.3))
        self.index += 1


class SevenSegmentController:
    """Seconds countdown on a BCD seven-segment display with an alarm at zero."""

    def __init__(self, gpio: Gpio, logger: LogFunc) -> None:
        self.gpio = gpio
        self.logger = logger
        self.countdown = -1
        self.prev_command = "x"
        self._last_tick_ms: int | None = None

    def apply_command(self, command: str) -> None:
        """A digit starts a countdown from that value; anything else cancels it."""
        if command == self.prev_command:
            return
        self.prev_command = command
        if len(command) == 1 and command.isdigit():
            self.countdown = int(command)
            _emit(self.logger, f"TIMER:{self.countdown}")
            self.display(self.countdown)
        else:
            self.countdown = -1

    def tick(self, now_ms: int) -> bool:
        """Advance the countdown; return True when the alarm sounded."""
        if self._last_tick_ms is None:
            self._last_tick_ms = now_ms
        if self.countdown < 0:
            return False
        if now_ms - self._last_tick_ms > TICK_MS:
            self.display(self.countdown)
            self.countdown -= 1
            self._last_tick_ms = now_ms
        if self.countdown == 0:
            self.display(self.countdown)
            self.countdown -= 1
            for frequency, ms in ALARM_TONES:
                self.gpio.tone_write(BUZZER_PIN, frequency)
                self.gpio.delay(ms)
            self.gpio.tone_write(BUZZER_PIN, 0)
            return True
        return False

    def display(self, digit: int) -> None:
        """Blank the display, then show ``digit``."""
        pattern = digit_pattern(digit)
        for pin in SEGMENT_PINS:
            self.gpio.digital_write(pin, HIGH)
        for pin, bit in zip(SEGMENT_PINS, pattern):
            self.gpio.digital_write(pin, HIGH if bit else LOW)