from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .constants import DEFAULT_POLLING, DEFAULT_TIMEOUT_MS, ENV_POLLING, ENV_TIMEOUT_MS
from .models import PollingMode


@dataclass(frozen=True)
class WaitDefaults:
    """
    Defaults applied by wait_for_function() when the caller leaves them out.

    Environment overrides:
    - PAGEWAIT_POLLING: "raf", "mutation" or an interval in milliseconds
    - PAGEWAIT_TIMEOUT_MS: timeout in milliseconds (0 disables)
    """

    polling: PollingMode = DEFAULT_POLLING
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> WaitDefaults:
        env = os.environ if environ is None else environ

        polling: PollingMode = DEFAULT_POLLING
        raw_polling = env.get(ENV_POLLING, "").strip()
        if raw_polling:
            if raw_polling in ("raf", "mutation"):
                polling = raw_polling  # type: ignore[assignment]
            else:
                try:
                    polling = int(raw_polling)
                except ValueError:
                    raise ValueError(
                        f"{ENV_POLLING} must be 'raf', 'mutation' or milliseconds, got {raw_polling!r}"
                    ) from None
                if polling <= 0:
                    raise ValueError(f"{ENV_POLLING} must be positive, got {raw_polling!r}")

        timeout_ms = DEFAULT_TIMEOUT_MS
        raw_timeout = env.get(ENV_TIMEOUT_MS, "").strip()
        if raw_timeout:
            try:
                timeout_ms = int(raw_timeout)
            except ValueError:
                raise ValueError(f"{ENV_TIMEOUT_MS} must be an integer, got {raw_timeout!r}") from None
            if timeout_ms < 0:
                raise ValueError(f"{ENV_TIMEOUT_MS} must be >= 0, got {raw_timeout!r}")

        return cls(polling=polling, timeout_ms=timeout_ms)
