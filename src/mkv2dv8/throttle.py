"""Process priority prefixes for external tool invocations.

A speed mode resolves once per run to a command prefix (``taskpolicy`` on
macOS, ``nice`` elsewhere) that every pipeline invocation is launched under.
"""

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass

from mkv2dv8.config.models import SpeedMode

logger = logging.getLogger(__name__)

# Preferred utility; arguments per mode
_TASKPOLICY_ARGS: dict[SpeedMode, tuple[str, ...]] = {
    SpeedMode.FAST: (),
    SpeedMode.BALANCED: ("-c", "background"),
    SpeedMode.GENTLE: ("-c", "background", "-t", "throttle"),
}

# Fallback utility; arguments per mode
_NICE_ARGS: dict[SpeedMode, tuple[str, ...]] = {
    SpeedMode.FAST: (),
    SpeedMode.BALANCED: ("-n", "5"),
    SpeedMode.GENTLE: ("-n", "10"),
}


@dataclass(frozen=True)
class ThrottleProfile:
    """A resolved speed mode and the prefix it maps to."""

    mode: SpeedMode
    prefix: tuple[str, ...] = ()

    @property
    def utility(self) -> str | None:
        """Name of the priority utility in use, or None when unthrottled."""
        return self.prefix[0] if self.prefix else None

    def wrap(self, args: list[str]) -> list[str]:
        """Return ``args`` launched under this profile's prefix."""
        return [*self.prefix, *args]

    def describe(self) -> str:
        if not self.prefix:
            return f"{self.mode.value} (no throttling)"
        return f"{self.mode.value} ({' '.join(self.prefix)})"


def select_throttle_profile(
    mode: "SpeedMode | str",
    which: Callable[[str], str | None] = shutil.which,
) -> ThrottleProfile:
    """Resolve a speed mode to a throttle profile.

    Args:
        mode: Speed mode or its name.
        which: Executable lookup, injectable for tests.

    Returns:
        ThrottleProfile whose prefix is empty for ``fast`` or when neither
        utility is installed.

    Raises:
        ConfigError: If the mode name is unknown.
    """
    mode = SpeedMode.parse(mode)
    if mode == SpeedMode.FAST:
        return ThrottleProfile(mode=mode)

    if which("taskpolicy"):
        prefix = ("taskpolicy", *_TASKPOLICY_ARGS[mode])
        return ThrottleProfile(mode=mode, prefix=prefix)
    if which("nice"):
        return ThrottleProfile(mode=mode, prefix=("nice", *_NICE_ARGS[mode]))

    logger.warning(
        "Speed mode '%s' requested but neither taskpolicy nor nice was found; "
        "running without throttling",
        mode.value,
    )
    return ThrottleProfile(mode=mode)
