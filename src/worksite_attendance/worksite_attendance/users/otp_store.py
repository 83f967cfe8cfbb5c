from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.constants import DEFAULT_OTP_MAX_ATTEMPTS, DEFAULT_OTP_SWEEP_SECONDS, DEFAULT_OTP_TTL_SECONDS

logger = logging.getLogger(__name__)

_STRIPES = 64


def generate_otp() -> str:
    """4-digit numeric code."""
    return str(1000 + secrets.randbelow(9000))


@dataclass
class _Entry:
    code: str
    expires_at: float
    attempts: int = 0


@dataclass(frozen=True)
class OtpResult:
    valid: bool
    message: str


class OtpStore:
    """Process-wide TTL store of one-time codes keyed by country code + mobile number.

    Every operation on a key runs under that key's lock (striped), so the
    read-check-increment-write of the attempt counter cannot lose updates.
    A daemon thread started by ``start()`` sweeps expired entries.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_OTP_TTL_SECONDS,
        max_attempts: int = DEFAULT_OTP_MAX_ATTEMPTS,
        sweep_seconds: float = DEFAULT_OTP_SWEEP_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        code_factory: Callable[[], str] = generate_otp,
    ):
        self._ttl = float(ttl_seconds)
        self._max_attempts = int(max_attempts)
        self._sweep_seconds = float(sweep_seconds)
        self._clock = clock
        self._code_factory = code_factory

        self._entries: dict[str, _Entry] = {}
        self._locks = [threading.Lock() for _ in range(_STRIPES)]
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def key(country_code: str, mobile_number: str) -> str:
        return f"{country_code}{mobile_number}"

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % _STRIPES]

    def issue(self, country_code: str, mobile_number: str) -> str:
        key = self.key(country_code, mobile_number)
        code = self._code_factory()
        with self._lock_for(key):
            self._entries[key] = _Entry(code=code, expires_at=self._clock() + self._ttl)
        return code

    def verify(self, country_code: str, mobile_number: str, code: str) -> OtpResult:
        key = self.key(country_code, mobile_number)
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is None:
                return OtpResult(False, "OTP not found. Please request a new OTP.")

            if self._clock() > entry.expires_at:
                del self._entries[key]
                return OtpResult(False, "OTP has expired. Please request a new OTP.")

            if entry.attempts >= self._max_attempts:
                del self._entries[key]
                return OtpResult(False, "Maximum verification attempts exceeded. Please request a new OTP.")

            entry.attempts += 1
            if secrets.compare_digest(entry.code, str(code)):
                del self._entries[key]
                return OtpResult(True, "OTP verified successfully")

            remaining = self._max_attempts - entry.attempts
            return OtpResult(False, f"Invalid OTP. {remaining} attempts remaining.")

    def peek(self, country_code: str, mobile_number: str) -> Optional[str]:
        key = self.key(country_code, mobile_number)
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is None or self._clock() > entry.expires_at:
                return None
            return entry.code

    def remove(self, country_code: str, mobile_number: str) -> None:
        key = self.key(country_code, mobile_number)
        with self._lock_for(key):
            self._entries.pop(key, None)

    def sweep(self) -> int:
        """Delete expired entries; returns how many were removed."""

        removed = 0
        for key in list(self._entries):
            with self._lock_for(key):
                entry = self._entries.get(key)
                if entry is not None and self._clock() > entry.expires_at:
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.debug("Swept %s expired OTP entries", removed)
        return removed

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="otp-sweep", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self._sweep_seconds):
            self.sweep()

    def __len__(self) -> int:
        return len(self._entries)
