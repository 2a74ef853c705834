"""Prompt construction for protocol synthesis."""

import json

from .models import LengthTier, SynthesisContext

SHORT_TRANSCRIPT_WORDS = 50

LENGTH_TIERS: tuple[LengthTier, ...] = (
    LengthTier(
        min_words=0,
        summary_length="1-2 short sentences",
        main_points_count="1-3",
        main_points_detail="one short sentence each",
        decisions_detail="only decisions stated explicitly, one line each",
        action_items_count="0-1",
        action_items_detail="only if a concrete task was mentioned",
        next_meeting_count="0-1",
    ),
    LengthTier(
        min_words=100,
        summary_length="2-3 sentences",
        main_points_count="2-4",
        main_points_detail="one sentence each",
        decisions_detail="one line per decision",
        action_items_count="0-2",
        action_items_detail="title and owner when mentioned",
        next_meeting_count="0-2",
    ),
    LengthTier(
        min_words=200,
        summary_length="3-4 sentences",
        main_points_count="3-5",
        main_points_detail="one or two sentences each",
        decisions_detail="one sentence per decision with its context",
        action_items_count="1-3",
        action_items_detail="title, short description and owner",
        next_meeting_count="1-2",
    ),
    LengthTier(
        min_words=500,
        summary_length="4-5 sentences",
        main_points_count="4-7",
        main_points_detail="two sentences each with the key arguments",
        decisions_detail="each decision with its rationale",
        action_items_count="2-5",
        action_items_detail="title, description, owner and deadline when known",
        next_meeting_count="2-3",
    ),
    LengthTier(
        min_words=1000,
        summary_length="5-7 sentences",
        main_points_count="5-8",
        main_points_detail="two or three sentences each covering discussion and outcome",
        decisions_detail="each decision with rationale and who it affects",
        action_items_count="3-7",
        action_items_detail="title, full description, owner, deadline and priority",
        next_meeting_count="2-4",
    ),
    LengthTier(
        min_words=2000,
        summary_length="6-8 sentences",
        main_points_count="6-10",
        main_points_detail="a short paragraph each covering discussion, positions and outcome",
        decisions_detail="each decision with rationale, alternatives raised and who it affects",
        action_items_count="5-10",
        action_items_detail="title, full description, owner, deadline and priority",
        next_meeting_count="3-5",
    ),
)

_RESPONSE_SHAPE = {
    "title": "string",
    "summary": "string",
    "mainPoints": ["string"],
    "decisions": ["string"],
    "actionItems": [
        {
            "title": "string",
            "description": "string",
            "owner": "string",
            "deadline": "string",
            "priority": "critical | high | medium | low",
        }
    ],
    "nextMeetingSuggestions": ["string"],
}


def count_words(text: str) -> int:
    return len(text.split())


def select_length_tier(word_count: int) -> LengthTier:
    """
    Returns the tier for a transcript of ``word_count`` words.

    A count equal to a breakpoint belongs to the tier starting at it.
    """
    selected = LENGTH_TIERS[0]
    for tier in LENGTH_TIERS:
        if word_count >= tier.min_words:
            selected = tier
    return selected


def build_protocol_prompt(
    transcript: str, context: SynthesisContext, language: str = "Swedish"
) -> str:
    """
    Builds the full protocol prompt for one transcript.

    Args:
        transcript: Meeting transcript text.
        context: Meeting name, agenda and resolved speakers.
        language: Language the protocol is written in.

    Returns:
        The prompt text.
    """
    word_count = count_words(transcript)
    tier = select_length_tier(word_count)
    meeting_name = context.meeting_name or "Untitled meeting"

    sections = [
        "You are an experienced meeting secretary. Write a meeting protocol "
        f"in {language} from the transcript below.",
        f"Meeting: {meeting_name}\nTranscript length: {word_count} words",
    ]

    if context.agenda and context.agenda.strip():
        sections.append(
            "Agenda:\n"
            f"{context.agenda.strip()}\n"
            "Structure the main points and decisions by the agenda items above."
        )

    if context.speakers:
        speaker_lines = "\n".join(
            f"- {speaker.name} ({speaker.segments} segments)" for speaker in context.speakers
        )
        sections.append(
            "Speakers:\n"
            f"{speaker_lines}\n"
            "Refer to speakers by these names. Use a name as the owner of an "
            "action item only when the transcript makes the responsibility clear."
        )

    if word_count < SHORT_TRANSCRIPT_WORDS:
        sections.append(
            "Note: the transcript is very short. Keep the protocol brief and do "
            "not invent content that was not said."
        )

    sections.append(
        "Length guidelines:\n"
        f"- summary: {tier.summary_length}\n"
        f"- main points: {tier.main_points_count}, {tier.main_points_detail}\n"
        f"- decisions: {tier.decisions_detail}\n"
        f"- action items: {tier.action_items_count}, {tier.action_items_detail}\n"
        f"- next meeting suggestions: {tier.next_meeting_count}"
    )
    sections.append(
        "Return only a JSON object with exactly this shape and no other text:\n"
        f"{json.dumps(_RESPONSE_SHAPE, indent=2)}"
    )
    sections.append(f"Transcript:\n{transcript}")
    return "\n\n".join(sections)
