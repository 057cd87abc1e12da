# iotctl

iotctl is a small TCP service for a board with an LED, a buzzer and a
seven-segment countdown display. It comes with an interactive client to
control the board. It also has device controllers that run against any GPIO
backend you supply.

The server listens on TCP port 5100 and gives the devices to one user at a
time. The first user to send a message owns the board. Ownership ends when
that user disconnects or stays idle for more than 30 seconds. Until then,
every other user gets a "device in use" reply. Each accepted command is
answered with `Day` or `Night`. This is the day/night state the server last
received through `DeviceServer.handle_device_report`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Running the server

```
iotctl-server [--host HOST] [--port PORT] [--log-file PATH]
```

| Option       | Default                |
|--------------|------------------------|
| `--host`     | `0.0.0.0`              |
| `--port`     | `5100`                 |
| `--log-file` | `/tmp/tcp_server.log`  |

The server writes the following to the log file:

- connections and disconnections
- accepted and rejected commands
- timeouts
- malformed messages

Each line has the form `[YYYY-mm-dd HH:MM:SS] [LEVEL] message`. If the log
file cannot be opened, the entry is dropped. Press Ctrl+C to stop the
server.

A message from the owning user that has fewer than five fields gets no
reply. It is logged as `MALFORMED`.

## Running the client

```
iotctl-client 127.0.0.1 [--port PORT]
```

The address must be an IPv4 address. The client first asks for a user id,
which it cuts to 19 characters. It then asks for a command, again and again:

- `c` means control. The client asks for the LED level, the buzzer state and
  a timer value, then sends a control message.
- `q` means quit. The client closes the connection.
- Anything else sends the default message `<userid>:c:x:x:x`.

The client prints each reply from the server. It stops when the server
closes the connection.

## Wire format

A control message is a run of colon-separated fields:

```
<userid>:c:<led>:<buzzer>:<timer>
```

The server uses only the first character of the `led`, `buzzer` and `timer`
fields.

| Field  | Values |
|--------|--------|
| led    | `x` no change, `0` toggle on/off, `1` weak, `2` normal, `3` strong |
| buzzer | `x` no change, `0` stop, `1` play the melody in a loop |
| timer  | `0`–`9` start a countdown of that many seconds; anything else (such as `x` or `-1`) cancels a running countdown |

Each device ignores a command that is the same as its previous one. For
example, sending LED `0` twice in a row toggles the LED only once. The LED
lights only when the light sensor reports night. When a countdown reaches
zero, the display shows `0` and the buzzer sounds two short beeps.

## Library use

- `iotctl.parser.split_string(text, delimiter)` splits a message into its
  fields and keeps empty fields.
- `iotctl.client.build_message` formats a control message.
  `iotctl.client.prepare_message` asks for one command through any
  prompt function. `iotctl.client.run_client` runs the client loop.
- `iotctl.sessions.SessionRegistry` applies the single-owner and timeout rules
  without any sockets. `handle_message` returns a `Reply`, which carries
  the reply text and the LED, buzzer and timer commands when the sender is
  the owner.
- `iotctl.server.DeviceServer` is the socket server. Its `device_state` holds
  the current LED, buzzer and timer commands. Callables in `state_listeners`
  are called with that state on every event that is not a new connection.
- `iotctl.devices` holds `LedController`, `BuzzerController` and
  `SevenSegmentController`. They drive any `Gpio` implementation.
  `RecordingGpio` records the pin activity instead of touching hardware.
  `digit_pattern` gives the BCD pin levels for a digit.
- `iotctl.logger.FileLogger` and `iotctl.logger.log_line` write the
  timestamped log lines.

## What it does not do

- The package has no `Gpio` backend for real pins. Only `RecordingGpio` is
  provided.
- The server does not run the device controllers itself. To drive hardware,
  subscribe to `DeviceServer.state_listeners` and pass the commands to the
  controllers.
- Day/night reports from `LedController.update` must be handed to
  `DeviceServer.handle_device_report` by your own code. Until one arrives,
  the server answers `Day`.
- The server runs in the foreground and does not detach itself as a daemon.