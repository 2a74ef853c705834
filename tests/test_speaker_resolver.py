import pytest

from meeting_pipeline.domain import (
    SpeakerIdentityResolver,
    TranscriptSegment,
    compute_offset,
    is_generic_speaker_name,
    normalize_speaker_key,
    parse_speaker_index,
    parse_speaker_token,
    placeholder_speaker_name,
    resolve_speaker_name,
    summarize_speakers,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("speaker_0", "speaker_0"),
        ("SPEAKER_00", "speaker_0"),
        ("speaker-3", "speaker_3"),
        ("Talare 1", "speaker_1"),
        ("Anna Svensson", "anna_svensson"),
        ("", ""),
    ],
)
def test_normalize_speaker_key(raw, expected):
    assert normalize_speaker_key(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("speaker_0", 0),
        ("speaker-2", 2),
        ("Talare 1", 0),
        ("Speaker 3", 2),
        ("talare_2", 1),
        ("Anna", None),
    ],
)
def test_parse_speaker_index(raw, expected):
    assert parse_speaker_index(raw) == expected


def test_parse_speaker_token_combines_index_and_key():
    token = parse_speaker_token(" Talare 2 ")

    assert token.raw == "Talare 2"
    assert token.index == 1
    assert token.key == "speaker_2"


@pytest.mark.parametrize("name", ["", None, "Talare 2", "speaker", "Speaker_4", "Unknown", "Okänd"])
def test_generic_names(name):
    assert is_generic_speaker_name(name) is True


def test_human_names_are_not_generic():
    assert is_generic_speaker_name("Alice") is False
    assert is_generic_speaker_name("Talaren Anna") is False


def test_offset_for_one_based_dictionary():
    offset = compute_offset(["speaker_0", "speaker_1"], {"speaker_1": "Alice", "speaker_2": "Bob"})

    assert offset == 1


def test_offset_ignores_generic_entries():
    assert compute_offset(["speaker_0"], {"speaker_1": "Talare 2"}) == 0
    assert compute_offset(["speaker_0"], {"speaker_0": "Alice", "speaker_1": "Talare 2"}) == 0


def test_offset_is_zero_without_indices_on_either_side():
    assert compute_offset([], {"speaker_1": "Alice"}) == 0
    assert compute_offset(["speaker_0"], {}) == 0
    assert compute_offset(["Anna"], {"speaker_1": "Alice"}) == 0


def test_zero_based_dictionary_resolves_directly():
    name_map = {"speaker_0": "Alice", "speaker_1": "Bob"}

    assert resolve_speaker_name("speaker_0", name_map, 0) == "Alice"
    assert resolve_speaker_name("speaker_1", name_map, 0) == "Bob"


def test_one_based_dictionary_resolves_through_offset():
    name_map = {"speaker_1": "Alice", "speaker_2": "Bob"}
    offset = compute_offset(["speaker_0", "speaker_1"], name_map)

    assert resolve_speaker_name("speaker_0", name_map, offset) == "Alice"


def test_display_label_keys_resolve_through_offset():
    name_map = {"Talare 1": "Alice", "Talare 2": "Bob"}
    resolver = SpeakerIdentityResolver(name_map, ["speaker_0", "speaker_1"])

    assert resolver.offset == 1
    assert resolver.resolve("speaker_0") == "Alice"
    assert resolver.resolve("speaker_1") == "Bob"


def test_generic_values_are_never_returned():
    assert resolve_speaker_name("speaker_0", {"speaker_0": "Talare 1"}, 0) is None
    assert resolve_speaker_name("speaker_0", {"speaker_0": "unknown"}, 0) is None


def test_missing_speaker_resolves_to_none():
    assert resolve_speaker_name("speaker_5", {"speaker_0": "Alice"}, 0) is None
    assert resolve_speaker_name("", {"speaker_0": "Alice"}, 0) is None


def test_free_text_keys_match_case_insensitively():
    assert resolve_speaker_name("Anna", {"anna": "Anna Svensson"}, 0) == "Anna Svensson"


@pytest.mark.parametrize(
    "token, position, expected",
    [
        ("speaker_0", 0, "Talare 1"),
        ("speaker_2", 0, "Talare 3"),
        ("Talare 2", 0, "Talare 2"),
        ("B", 0, "Talare B"),
        ("guest", 2, "Talare 3"),
    ],
)
def test_placeholder_speaker_name(token, position, expected):
    assert placeholder_speaker_name(token, position) == expected


def test_summarize_speakers_in_order_of_appearance():
    segments = [
        TranscriptSegment(speaker="speaker_0", text="Hej"),
        TranscriptSegment(speaker="speaker_1", text="Hallå"),
        TranscriptSegment(speaker="speaker_0", text="Då börjar vi"),
    ]

    speakers = summarize_speakers(segments, {"speaker_0": "Alice"})

    assert [(s.token, s.name, s.segments) for s in speakers] == [
        ("speaker_0", "Alice", 2),
        ("speaker_1", "Talare 2", 1),
    ]
