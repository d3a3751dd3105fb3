# helps local imports without coupling to models (avoids cycles)
from enum import Enum
from typing import Literal

ScreenOrientation = Literal["portrait", "landscape"]


class ThermalState(str, Enum):
    nominal = "nominal"
    fair = "fair"
    serious = "serious"
    critical = "critical"


class ActivationResult(str, Enum):
    activated = "activated"
    duplicate_activation = "duplicate_activation"
    no_battery_present = "no_battery_present"
