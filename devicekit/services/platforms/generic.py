import platform

from devicekit.services.device import CurrentDevice, UNKNOWN, UNKNOWN_IDENTIFIER


class GenericDevice(CurrentDevice):
    """Fallback for hosts without a dedicated variant (BSDs, unknown Unixes)."""

    @property
    def identifier(self) -> str:
        return platform.machine() or UNKNOWN_IDENTIFIER

    @property
    def model(self) -> str:
        return UNKNOWN

    @property
    def system_name(self) -> str:
        return platform.system() or UNKNOWN

    @property
    def system_version(self) -> str:
        return platform.release() or "0.0"
