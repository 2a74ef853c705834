"""
Speaker name resolution across differently-based speaker numbering schemes.

Transcript segments usually carry 0-based machine ids (``speaker_0``) while
the backend alias dictionary may be keyed 0-based, 1-based or by display
label (``Talare 1``). The offset between the two is inferred per meeting from
the smallest index seen on each side.
"""

import re
from collections.abc import Iterable, Mapping

from .models import SpeakerSummary, SpeakerToken, TranscriptSegment

_GENERIC_NAME = re.compile(r"^(talare|speaker)[_\s-]?\d*$")
_GENERIC_WORDS = frozenset({"unknown", "okänd"})

_MACHINE_ID = re.compile(r"^speaker[_-](\d+)$", re.IGNORECASE)
_DISPLAY_LABEL = re.compile(r"^(?:talare|speaker)[\s-]+(\d+)$", re.IGNORECASE)
_UNDERSCORED_LABEL = re.compile(r"^talare[_-]?(\d+)$", re.IGNORECASE)
_LABEL_NUMBER = re.compile(r"(?:speaker|talare)[_\s-]?(\d+)", re.IGNORECASE)
_ANY_NUMBER = re.compile(r"(\d+)")
_CANONICAL_KEY = re.compile(r"^speaker_(\d+)$")


def _as_text(raw: object) -> str:
    return "" if raw is None else str(raw).strip()


def is_generic_speaker_name(name: object) -> bool:
    """Returns True for names that are not real human overrides."""
    lowered = _as_text(name).lower()
    if not lowered:
        return True
    return bool(_GENERIC_NAME.match(lowered)) or lowered in _GENERIC_WORDS


def normalize_speaker_key(raw: object) -> str:
    """
    Normalizes a token into a ``speaker_<n>`` key without applying any offset.

    Tokens without a number degrade to a lowercase key with whitespace
    collapsed to underscores.
    """
    text = _as_text(raw)
    if not text:
        return ""

    match = _MACHINE_ID.match(text) or _LABEL_NUMBER.search(text) or _ANY_NUMBER.search(text)
    if match:
        return f"speaker_{int(match.group(1))}"
    return re.sub(r"\s+", "_", text.lower())


def parse_speaker_index(raw: object) -> int | None:
    """
    Parses a transcript-side token into a 0-based speaker index.

    Machine ids (``speaker_0``, ``speaker-0``) are already 0-based; display
    labels (``Talare 1``, ``Speaker 1``, ``talare_1``) are 1-based.
    """
    text = _as_text(raw).lower()
    if not text:
        return None

    match = _MACHINE_ID.match(text)
    if match:
        return int(match.group(1))

    match = _DISPLAY_LABEL.match(text) or _UNDERSCORED_LABEL.match(text)
    if match:
        return max(0, int(match.group(1)) - 1)
    return None


def parse_speaker_token(raw: object) -> SpeakerToken:
    return SpeakerToken(
        raw=_as_text(raw),
        index=parse_speaker_index(raw),
        key=normalize_speaker_key(raw),
    )


def compute_offset(transcript_tokens: Iterable[object], name_map: Mapping[str, str]) -> int:
    """
    Computes ``backend_min - transcript_min`` for one resolution pass.

    Only dictionary entries with non-generic names count on the backend side.
    Returns 0 when either side has no usable index.
    """
    transcript_indices = [
        index
        for index in (parse_speaker_index(token) for token in transcript_tokens)
        if index is not None
    ]
    if not transcript_indices:
        return 0

    backend_indices: list[int] = []
    for key, value in name_map.items():
        if is_generic_speaker_name(value):
            continue
        match = _CANONICAL_KEY.match(normalize_speaker_key(key))
        if match:
            backend_indices.append(int(match.group(1)))
    if not backend_indices:
        return 0

    return min(backend_indices) - min(transcript_indices)


def backend_key_for_token(token: object, offset: int) -> str:
    """Maps a transcript token to the backend key it corresponds to under ``offset``."""
    index = parse_speaker_index(token)
    if index is None:
        return normalize_speaker_key(token)
    return f"speaker_{max(0, index + offset)}"


def resolve_speaker_name(
    token: object, name_map: Mapping[str, str], offset: int
) -> str | None:
    """
    Looks up the human-assigned name for a transcript speaker token.

    Tries the raw token, its normalized key and the offset-shifted key, then
    scans the whole dictionary comparing normalized keys. Generic names are
    never returned.

    Returns:
        The display name, or None when no human name exists.
    """
    raw = _as_text(token)
    if not raw:
        return None

    shifted = backend_key_for_token(raw, offset)
    for key in (raw, normalize_speaker_key(raw), shifted):
        value = name_map.get(key) if key else None
        if value and not is_generic_speaker_name(value):
            return value

    candidates: dict[str, str] = {}
    for key, value in name_map.items():
        if value and not is_generic_speaker_name(value):
            candidates.setdefault(normalize_speaker_key(key), value)
    # shifted key first, the dictionary may be keyed by display labels
    for target in (normalize_speaker_key(shifted), normalize_speaker_key(raw)):
        if target in candidates:
            return candidates[target]
    return None


def placeholder_speaker_name(token: object, position: int = 0) -> str:
    """Generated label for a speaker without a human name."""
    index = parse_speaker_index(token)
    if index is None:
        match = _LABEL_NUMBER.search(_as_text(token))
        if match:
            index = int(match.group(1))
    if index is not None:
        return f"Talare {index + 1}"

    text = _as_text(token)
    if len(text) == 1 and text.isalpha():
        return f"Talare {text.upper()}"
    return f"Talare {position + 1}"


class SpeakerIdentityResolver:
    """Resolves speaker names for one transcript with a fixed offset."""

    def __init__(self, name_map: Mapping[str, str], transcript_tokens: Iterable[object]):
        self._name_map = dict(name_map)
        self.offset = compute_offset(transcript_tokens, self._name_map)

    def resolve(self, token: object) -> str | None:
        return resolve_speaker_name(token, self._name_map, self.offset)


def summarize_speakers(
    segments: Iterable[TranscriptSegment], name_map: Mapping[str, str]
) -> list[SpeakerSummary]:
    """
    Lists the speakers of a transcript in order of first appearance.

    Speakers without a human name get a placeholder label.
    """
    counts: dict[str, int] = {}
    for segment in segments:
        counts[segment.speaker] = counts.get(segment.speaker, 0) + 1

    resolver = SpeakerIdentityResolver(name_map, counts)
    return [
        SpeakerSummary(
            token=token,
            name=resolver.resolve(token) or placeholder_speaker_name(token, position),
            segments=count,
        )
        for position, (token, count) in enumerate(counts.items())
    ]
