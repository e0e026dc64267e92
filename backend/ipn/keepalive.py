"""
Keepalive - Periodic self-ping so free-tier hosts do not idle the process out.

Runs on a daemon thread, never touches request handling, and swallows its
own network failures.
"""
import logging
import threading
from typing import Optional

import requests


class KeepAlive:

    def __init__(self, url: str, interval: float = 600, timeout: float = 10):
        self.url = url
        self.interval = interval
        self.timeout = timeout
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def ping(self) -> bool:
        try:
            r = requests.get(self.url, timeout=self.timeout)
            logging.debug(f"Keepalive ping {self.url} -> {r.status_code}")
            return r.ok
        except requests.RequestException as e:
            logging.debug(f"Keepalive ping failed: {e}")
            return False

    def _run(self):
        # Event.wait doubles as an interruptible sleep
        while not self._stop.wait(self.interval):
            self.ping()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="ipn-keepalive", daemon=True)
        self._thread.start()
        logging.info(f"Keepalive started: {self.url} every {self.interval}s")

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=self.timeout)
