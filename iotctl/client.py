"""Interactive TCP client that sends device control commands to the server."""

from __future__ import annotations

import argparse
import ipaddress
import re
import socket
import sys
from typing import Callable, Optional, Sequence, TextIO

TCP_PORT = 5100
USERID_MAX = 19
MSGSIZ = 8192

COMMAND_PROMPT = "명령어를 입력하세요 (c: 제어, q: 종료): "
LED_PROMPT = "LED 세기 입력 (x(입력 없음), 0(toggle), 1(weak), 2(normal), 3(strong) 중 하나): "
BUZZER_PROMPT = "부저 ON/OFF 입력 (x(입력 없음), 0: 정지, 1: 재생): "
TIMER_PROMPT = "타이머 설정 (x(입력 없음), 0 ~ 9 숫자(초)): "
INVALID_NOTICE = "잘못된 명령입니다. 기본 메시지를 서버에 전송합니다."

Ask = Callable[[str], str]

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


def build_message(userid: str, command: str, led: str, buzzer: str, timer: int) -> str:
    """Format ``userid:command:led:buzzer:timer`` as sent to the server."""
    return f"{userid}:{command}:{led}:{buzzer}:{timer}"[: MSGSIZ - 1]


def _first_char(answer: str, default: str) -> str:
    stripped = answer.strip()
    return stripped[0] if stripped else default


def _parse_timer(answer: str) -> int:
    match = _INT_PREFIX.match(answer)
    return int(match.group(1)) if match else -1


def prepare_message(userid: str, ask: Ask) -> tuple[str, str]:
    """Ask for one command and return ``(command, message)``.

    The command is ``'c'`` for a control message, ``'q'`` to quit (with an
    empty message) or ``'i'`` for an unknown command, in which case the
    default control message is produced.
    """
    command = _first_char(ask(COMMAND_PROMPT), "")
    if command == "c":
        led = _first_char(ask(LED_PROMPT), "x")
        buzzer = _first_char(ask(BUZZER_PROMPT), "x")
        timer = _parse_timer(ask(TIMER_PROMPT))
        return command, build_message(userid, command, led, buzzer, timer)
    if command == "q":
        return command, ""
    return "i", f"{userid}:c:x:x:x"


def run_client(
    host: str,
    port: int = TCP_PORT,
    userid: str = "",
    ask: Ask = input,
    out: Optional[TextIO] = None,
) -> int:
    """Connect to the server and exchange commands until quitting or disconnect.

    Raises ``ValueError`` for a host that is not an IPv4 address and
    ``OSError`` when the connection cannot be made.
    """
    out = sys.stdout if out is None else out
    try:
        ipaddress.IPv4Address(host)
    except ValueError:
        raise ValueError("올바른 IPv4 주소를 입력하세요 (예: 127.0.0.1)") from None

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((host, port))
        print("서버에 연결되었습니다. 메시지를 입력하세요.", file=out)
        while True:
            try:
                command, message = prepare_message(userid, ask)
            except EOFError:
                break
            if command == "i":
                print(INVALID_NOTICE, file=out)
            if not message:
                break
            try:
                sock.sendall(message.encode("utf-8"))
                data = sock.recv(MSGSIZ - 1)
            except OSError as err:
                print(f"통신 오류: {err}", file=out)
                break
            if not data:
                print("서버 연결이 종료되었습니다.", file=out)
                break
            print(f"서버 응답: {data.decode('utf-8', errors='replace')}", file=out)
    finally:
        sock.close()
        if sock.fileno() == -1:
            print("소켓 연결이 해제되었습니다.", file=out)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Device control client.")
    parser.add_argument("ip_address")
    parser.add_argument("--port", type=int, default=TCP_PORT)
    args = parser.parse_args(argv)

    try:
        userid = input("Write user id: ")[:USERID_MAX]
        return run_client(args.ip_address, args.port, userid, input, sys.stdout)
    except ValueError as err:
        print(err, file=sys.stderr)
        return 1
    except OSError as err:
        print(f"connect(): {err}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nSIGINT 수신: 클라이언트 종료 중...")
        return 0


if __name__ == "__main__":
    sys.exit(main())