"""pagewait constants."""

# Polling strategy used when the caller does not pick one.
DEFAULT_POLLING = "raf"

# Default wait timeout in milliseconds (0 disables the timeout).
DEFAULT_TIMEOUT_MS = 30_000

# Display refresh cadence emulated by in-process hosts.
FRAME_INTERVAL_MS = 1000 / 60

# Environment overrides read by WaitDefaults.from_env().
ENV_POLLING = "PAGEWAIT_POLLING"
ENV_TIMEOUT_MS = "PAGEWAIT_TIMEOUT_MS"
