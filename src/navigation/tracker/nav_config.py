# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass

from .models import ZoneThresholds


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

OUTER_THRESHOLD_M: float = 200.0
MID_THRESHOLD_M: float = 100.0
ARRIVAL_THRESHOLD_M: float = 50.0

SWITCH_PROMPT_TIMEOUT_S: float = 15.0   # auto-accept after this many seconds


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Proximity zones (metres). Edited at runtime; re-read on every target change.
    outer_threshold_m: float = OUTER_THRESHOLD_M
    mid_threshold_m: float = MID_THRESHOLD_M
    arrival_threshold_m: float = ARRIVAL_THRESHOLD_M

    # Re-sequencing
    switch_prompt_timeout_s: float = SWITCH_PROMPT_TIMEOUT_S

    # Logging
    log_dir: str = "."                          # directory for saved JSON files
    route_filename: str = "active_route.json"
    session_log_filename: str = "nav_session.jsonl"
    reached_log_prefix: str = "race_log"        # race_log_YYYY-MM-DD.json
    session_logging: bool = True

    def zone_thresholds(self) -> ZoneThresholds:
        """Snapshot of the current proximity zone settings."""
        return ZoneThresholds(
            outer=float(self.outer_threshold_m),
            mid=float(self.mid_threshold_m),
            arrival=float(self.arrival_threshold_m),
        )

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def session_log_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_log_filename)
