"""TCP server that lets one user at a time control the devices."""

from __future__ import annotations

import argparse
import selectors
import socket
import sys
import threading
import time
from pathlib import Path
from types import TracebackType
from typing import Callable, Optional, Sequence, Union

from .logger import LOG_FILE_PATH, LogLevel, log_line
from .sessions import Controls, Reply, SessionRegistry

SERVER_PORT = 5100
BUFSIZE = 1024

StateListener = Callable[[Controls], None]


class DeviceServer:
    """Accepts clients, applies authorized commands and reports day or night.

    ``device_state`` holds the LED, buzzer and timer commands. Every event
    that is not a new connection publishes the state to ``state_listeners``
    before a client message updates it, so devices see the new commands on
    the following event.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = SERVER_PORT,
        log_path: Optional[Union[str, Path]] = LOG_FILE_PATH,
    ) -> None:
        self.host = host
        self.port = port
        self.log_path = log_path
        self.registry = SessionRegistry()
        self.daynight = "d"
        self.device_state: Controls = ("x", "x", "x")
        self.state_listeners: list[StateListener] = []
        self._listener: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._clients: dict[int, socket.socket] = {}
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._serving = False

    @property
    def address(self) -> tuple[str, int]:
        return self._require_listener().getsockname()[:2]

    def _require_listener(self) -> socket.socket:
        if self._listener is None:
            raise RuntimeError("server is not started")
        return self._listener

    def _log(self, message: str) -> None:
        if self.log_path is None:
            return
        try:
            log_line(self.log_path, LogLevel.INFO, message)
        except OSError:
            pass

    def _publish(self) -> None:
        for listener in list(self.state_listeners):
            listener(self.device_state)

    def start(self) -> tuple[str, int]:
        """Bind and listen; return the bound address."""
        if self._listener is not None:
            raise RuntimeError("server is already started")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(socket.SOMAXCONN)
        except OSError:
            sock.close()
            raise
        self._selector = selectors.DefaultSelector()
        self._selector.register(sock, selectors.EVENT_READ)
        self._listener = sock
        self._stop.clear()
        return self.address

    def handle_new_connection(self) -> Optional[socket.socket]:
        """Accept one pending client and start its session."""
        listener = self._require_listener()
        try:
            conn, addr = listener.accept()
        except OSError:
            return None
        self._log(f"클라이언트 연결됨: {addr[0]}:{addr[1]}")
        conn.setblocking(False)
        try:
            self._selector.register(conn, selectors.EVENT_READ)
        except (OSError, ValueError):
            conn.close()
            return None
        fd = conn.fileno()
        self._clients[fd] = conn
        self.registry.add(fd, time.time())
        return conn

    def _drop(self, conn: socket.socket) -> None:
        fd = conn.fileno()
        self._log(f"클라이언트 종료됨 (fd: {fd})")
        if self.registry.disconnect(fd):
            self._log("authorized_userid 초기화됨 (unconnected)")
        self._forget(fd, conn)

    def _forget(self, fd: int, conn: socket.socket) -> None:
        self._clients.pop(fd, None)
        if self._selector is not None:
            try:
                self._selector.unregister(conn)
            except (KeyError, ValueError):
                pass
        conn.close()

    def handle_client_data(self, conn: socket.socket) -> Optional[Reply]:
        """Read one message from a client and answer it.

        Returns the reply sent, or ``None`` when nothing was answered
        (the client left, nothing was readable or the message was malformed).
        """
        if conn.fileno() < 0:
            return None
        self._publish()
        try:
            data = conn.recv(BUFSIZE - 1)
        except BlockingIOError:
            return None
        except OSError:
            data = b""
        if not data:
            self._drop(conn)
            return None

        fd = conn.fileno()
        self.registry.touch(fd, time.time())
        message = data.decode("utf-8", errors="replace")
        try:
            reply = self.registry.handle_message(fd, message, self.daynight)
        except ValueError:
            self._log(f"MALFORMED:{message}")
            return None

        if reply.authorized:
            self.device_state = reply.controls
            self._log(f"AUTHORIZED:{message}")
            self._send(conn, reply.text)
            self._log("SEVER>CLIENT:DAY" if self.daynight == "d" else "SEVER>CLIENT:NIGHT")
        else:
            self._log(
                f"{reply.userid} REJECTED(AUTHORIZED : {self.registry.authorized_userid})"
            )
            self._send(conn, reply.text)
        return reply

    @staticmethod
    def _send(conn: socket.socket, text: str) -> bool:
        try:
            conn.sendall(text.encode("utf-8"))
        except OSError:
            return False
        return True

    def handle_device_report(self, report: str) -> str:
        """Take a report from the light sensor: ``d`` means day, anything else night."""
        if report:
            self.daynight = "d" if report[0] == "d" else "n"
        self._publish()
        return self.daynight

    def check_timeouts(self, now: Optional[float] = None):
        """Close clients idle too long; return their sessions."""
        now = time.time() if now is None else now
        authorized_before = self.registry.authorized_userid
        stale = self.registry.expired(now)
        for session in stale:
            self._log(
                f"타임아웃 발생: 클라이언트(fd: {session.key}, userid: {session.userid}) 연결 해제"
            )
            conn = self._clients.get(session.key)
            if conn is not None:
                self._forget(session.key, conn)
            if session.userid == authorized_before:
                self._log("authorized_userid 초기화됨 (timeout 발생)")
        return stale

    def serve_forever(self, poll_interval: float = 1.0) -> None:
        """Dispatch events until :meth:`close` is called."""
        self._require_listener()
        with self._lock:
            self._serving = True
        try:
            while not self._stop.is_set():
                events = self._selector.select(poll_interval)
                self.check_timeouts()
                for key, _mask in events:
                    if self._stop.is_set():
                        break
                    if key.fileobj is self._listener:
                        self.handle_new_connection()
                    else:
                        self.handle_client_data(key.fileobj)
        finally:
            with self._lock:
                self._serving = False
            self._release()

    def _release(self) -> None:
        for conn in list(self._clients.values()):
            conn.close()
        self._clients.clear()
        if self._selector is not None:
            self._selector.close()
            self._selector = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None

    def close(self) -> None:
        """Stop serving and release the sockets."""
        self._stop.set()
        with self._lock:
            if self._serving:
                return
        self._release()

    def __enter__(self) -> DeviceServer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Device control server.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    parser.add_argument("--log-file", default=LOG_FILE_PATH)
    args = parser.parse_args(argv)

    with DeviceServer(args.host, args.port, args.log_file) as server:
        try:
            server.start()
        except OSError as err:
            print(f"서버 소켓 설정 실패: {err}", file=sys.stderr)
            return 1
        print(f"서버 시작됨: 포트 {server.address[1]}에서 대기 중...")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    print("서버 리소스 해제 완료")
    return 0


if __name__ == "__main__":
    sys.exit(main())