import pytest

from iotctl.devices import (
    BUZZER_PIN,
    CDS_PIN,
    DURATIONS,
    HIGH,
    LED_PIN,
    LOW,
    MELODY,
    NUM_NOTES,
    PWM_OFF,
    SEGMENT_PINS,
    STRONG,
    WEAK,
    BuzzerController,
    LedController,
    RecordingGpio,
    SevenSegmentController,
    digit_pattern,
)
from iotctl.logger import LogLevel


@pytest.fixture
def records():
    return []


@pytest.fixture
def log(records):
    return lambda level, message: records.append((level, message))


def _of(gpio, name):
    return [call[1:] for call in gpio.calls if call[0] == name]


@pytest.mark.parametrize("digit", range(10))
def test_digit_pattern_is_bcd(digit):
    bits = digit_pattern(digit)
    assert len(bits) == 4
    assert int("".join(map(str, bits)), 2) == digit


@pytest.mark.parametrize("digit", [-1, 10])
def test_digit_pattern_out_of_range(digit):
    with pytest.raises(ValueError):
        digit_pattern(digit)


def test_recording_gpio_tracks_levels_and_delay():
    gpio = RecordingGpio(inputs={CDS_PIN: HIGH})
    gpio.digital_write(3, HIGH)
    gpio.delay(250)
    gpio.delay(250)
    assert gpio.digital_read(CDS_PIN) == HIGH
    assert gpio.digital_read(99) == LOW
    assert gpio.levels[3] == HIGH
    assert _of(gpio, "delay") == [(250,), (250,)]
    assert gpio.elapsed_ms == 250 + 250


def test_led_strength_command(log, records):
    led = LedController(RecordingGpio(), log)
    assert led.apply_command("1") == "change"
    assert led.on is True
    assert led.strength == WEAK
    assert records == [(LogLevel.INFO, "LED:WEAK")]


def test_led_repeated_command_ignored(log, records):
    led = LedController(RecordingGpio(), log)
    led.apply_command("3")
    assert led.apply_command("3") is None
    assert led.strength == STRONG
    assert len(records) == 1


def test_led_toggle(log, records):
    led = LedController(RecordingGpio(), log)
    led.apply_command("0")
    assert led.on is True
    led.apply_command("2")
    led.apply_command("0")
    assert led.on is False
    assert records[0] == (LogLevel.INFO, "LED TOGGLE")


def test_led_unknown_command_reports_change_without_state_change(log, records):
    led = LedController(RecordingGpio(), log)
    led.apply_command("1")
    assert led.apply_command("x") == "change"
    assert (led.on, led.strength) == (True, WEAK)
    assert len(records) == 1


def test_led_lights_at_night_only():
    gpio = RecordingGpio(inputs={CDS_PIN: HIGH})
    led = LedController(gpio, None)
    led.apply_command("1")
    led.update(0)
    assert gpio.levels[LED_PIN] == PWM_OFF - WEAK
    gpio.inputs[CDS_PIN] = LOW
    led.update(1)
    assert gpio.levels[LED_PIN] == PWM_OFF


def test_led_off_at_night_when_switched_off():
    gpio = RecordingGpio(inputs={CDS_PIN: HIGH})
    led = LedController(gpio, None)
    led.update(0)
    assert gpio.levels[LED_PIN] == PWM_OFF


def test_led_day_night_reports():
    gpio = RecordingGpio(inputs={CDS_PIN: HIGH})
    led = LedController(gpio, None)
    assert led.update(0) is None
    assert led.update(10000) is None
    assert led.update(10001) == "n"
    assert led.update(15000) is None
    gpio.inputs[CDS_PIN] = LOW
    assert led.update(20002) == "d"


def test_buzzer_on_off(log, records):
    buzzer = BuzzerController(RecordingGpio(), log)
    buzzer.apply_command("1")
    assert buzzer.playing is True
    buzzer.apply_command("1")
    buzzer.apply_command("0")
    assert buzzer.playing is False
    assert records == [(LogLevel.INFO, "BUZZER ON"), (LogLevel.INFO, "BUZZER OFF")]


def test_buzzer_silent_when_off():
    gpio = RecordingGpio()
    buzzer = BuzzerController(gpio, None)
    buzzer.step()
    assert gpio.calls == []
    assert buzzer.index == 0


def test_buzzer_plays_first_note():
    gpio = RecordingGpio()
    buzzer = BuzzerController(gpio, None)
    buzzer.apply_command("1")
    buzzer.step()
    assert _of(gpio, "tone_write") == [(BUZZER_PIN, 2637), (BUZZER_PIN, 0)]
    assert _of(gpio, "delay") == [(75,), (37,)]
    assert buzzer.index == 1


def test_buzzer_rest_note_stays_silent():
    gpio = RecordingGpio()
    buzzer = BuzzerController(gpio, None)
    buzzer.apply_command("1")
    buzzer.step()
    buzzer.step()
    gpio.calls.clear()
    buzzer.step()
    assert MELODY[2] == 0
    assert all(freq == 0 for _, freq in _of(gpio, "tone_write"))
    assert _of(gpio, "delay")[0] == (DURATIONS[2],)


def test_buzzer_melody_wraps_around():
    gpio = RecordingGpio()
    buzzer = BuzzerController(gpio, None)
    buzzer.apply_command("1")
    for _ in range(NUM_NOTES):
        buzzer.step()
    assert buzzer.index == NUM_NOTES
    played = [freq for _, freq in _of(gpio, "tone_write") if freq]
    assert played == [note for note in MELODY if note]
    count = len(gpio.calls)
    buzzer.step()
    assert buzzer.index == 0
    assert len(gpio.calls) == count


def test_buzzer_stop_rewinds():
    buzzer = BuzzerController(RecordingGpio(), None)
    buzzer.apply_command("1")
    buzzer.step()
    buzzer.apply_command("0")
    buzzer.step()
    assert buzzer.index == 0


def test_segment_display_blanks_then_shows():
    gpio = RecordingGpio()
    seg = SevenSegmentController(gpio, None)
    seg.display(5)
    writes = _of(gpio, "digital_write")
    assert writes[:4] == [(pin, HIGH) for pin in SEGMENT_PINS]
    assert tuple(gpio.levels[pin] for pin in SEGMENT_PINS) == digit_pattern(5)


def test_segment_command_starts_timer(log, records):
    gpio = RecordingGpio()
    seg = SevenSegmentController(gpio, log)
    seg.apply_command("3")
    assert seg.countdown == 3
    assert records == [(LogLevel.INFO, "TIMER:3")]
    assert tuple(gpio.levels[pin] for pin in SEGMENT_PINS) == digit_pattern(3)


def test_segment_cancel():
    seg = SevenSegmentController(RecordingGpio(), None)
    seg.apply_command("5")
    seg.apply_command("x")
    assert seg.countdown == -1
    assert seg.tick(5000) is False


def test_segment_countdown_and_alarm():
    gpio = RecordingGpio()
    seg = SevenSegmentController(gpio, None)
    seg.apply_command("2")
    assert seg.tick(0) is False
    assert seg.tick(500) is False
    assert seg.countdown == 2
    assert seg.tick(1001) is False
    assert seg.countdown == 1
    assert seg.tick(2002) is True
    assert seg.countdown == -1
    assert _of(gpio, "tone_write") == [
        (BUZZER_PIN, 2637),
        (BUZZER_PIN, 2349),
        (BUZZER_PIN, 0),
    ]
    assert _of(gpio, "delay") == [(250,), (250,)]
    assert tuple(gpio.levels[pin] for pin in SEGMENT_PINS) == digit_pattern(0)
    assert seg.tick(4000) is False


def test_segment_zero_alarms_on_next_tick():
    gpio = RecordingGpio()
    seg = SevenSegmentController(gpio, None)
    seg.apply_command("0")
    assert seg.tick(0) is True
    assert seg.countdown == -1