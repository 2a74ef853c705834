"""Upload path selection for raw meeting audio."""

from meeting_pipeline.config import DEFAULT_RELAY_MAX_BYTES

from .models import UploadTarget


def choose_upload_target(
    size_bytes: int,
    direct_url: str,
    relay_url: str | None = None,
    max_relay_bytes: int = DEFAULT_RELAY_MAX_BYTES,
) -> UploadTarget:
    """
    Decides whether a payload goes through the relay or directly to ingest.

    The relay is used only when it is configured and the payload fits under
    its size limit; everything else goes to the direct ingest endpoint.

    Args:
        size_bytes: Byte length of the audio payload.
        direct_url: Ingest endpoint of the transcription service.
        relay_url: Size-limited relay endpoint, or None when not configured.
        max_relay_bytes: Largest payload the relay accepts.

    Returns:
        The UploadTarget for this attempt.
    """
    use_relay = bool(relay_url) and size_bytes <= max_relay_bytes
    return UploadTarget(
        use_relay=use_relay,
        endpoint_url=relay_url if use_relay else direct_url,
        max_relay_bytes=max_relay_bytes,
    )


class UploadRouter:
    """Chooses upload targets for a fixed endpoint configuration."""

    def __init__(
        self,
        direct_url: str,
        relay_url: str | None = None,
        max_relay_bytes: int = DEFAULT_RELAY_MAX_BYTES,
    ):
        self._direct_url = direct_url
        self._relay_url = relay_url
        self._max_relay_bytes = max_relay_bytes

    def choose_upload_target(self, size_bytes: int) -> UploadTarget:
        """Returns the target for a payload of ``size_bytes`` bytes."""
        return choose_upload_target(
            size_bytes,
            direct_url=self._direct_url,
            relay_url=self._relay_url,
            max_relay_bytes=self._max_relay_bytes,
        )
