# processing/screenplay_constants.py
"""Tables used by the screenplay scanner to tell speaker cues from other caps lines."""

import re

# Lines starting with any of these are scene headings, transitions or camera
# directions, never speaker cues. Matching is a case-insensitive prefix test.
HEADING_PREFIXES = (
    "INT.",
    "EXT.",
    "FADE",
    "CUT TO",
    "DISSOLVE",
    "SMASH",
    "MATCH",
    "JUMP",
)

DIRECTION_PREFIXES = (
    "BLINDING",
    "FADE",
    "CUT",
    "DISSOLVE",
    "SMASH",
    "MATCH",
    "JUMP",
    "FLASH",
    "FREEZE",
    "SLOW",
    "FAST",
    "QUICK",
    "INSTANT",
    "SUDDEN",
    "ABRUPT",
    "GRADUAL",
    "SLOWLY",
    "QUICKLY",
    "SUDDENLY",
    "ABRUPTLY",
    "GRADUALLY",
)

# Whole-line tokens (optionally followed by a period) that are sound effects
# or action verbs written in caps inside action lines.
SOUND_EFFECT_WORDS = frozenset(
    {
        # impacts and noises
        "THWACK", "SQUEAK", "THUD", "PING", "BANG", "CRASH", "BOOM", "WHAM",
        "POW", "ZAP", "BUZZ", "BEEP", "RING", "CLICK", "TICK", "HISS", "POP",
        "CRACK", "SNAP", "WHIP", "SLAM", "SMACK", "THUMP", "CLAP", "TAP",
        "KNOCK", "DING", "DONG", "BONG", "GONG", "CHIME", "BELL", "ALARM",
        "SIREN", "HORN", "WHISTLE",
        # vocal sounds
        "SCREAM", "SHOUT", "YELL", "WHISPER", "MURMUR", "MUMBLE", "GRUNT",
        "GROAN", "SIGH", "GASP", "CHOKE", "COUGH", "SNEEZE", "SNIFF", "SNORT",
        "LAUGH", "GIGGLE", "CHUCKLE", "GUFFAW", "CRY", "SOB", "WAIL", "MOAN",
        "WHINE",
        # speech verbs
        "COMPLAIN", "COMPLAINT", "PROTEST", "OBJECT", "ARGUE", "DEBATE",
        "DISCUSS", "TALK", "SPEAK", "SAY", "TELL", "ASK", "ANSWER", "REPLY",
        "RESPOND", "EXCLAIM", "DECLARE", "ANNOUNCE", "PROCLAIM", "STATE",
        "MENTION", "NOTE", "OBSERVE", "REMARK", "COMMENT", "QUIP", "JOKE",
        "TEASE", "TAUNT", "MOCK", "RIDICULE", "MIMIC", "IMITATE", "PARODY",
        "SATIRIZE", "CRITICIZE", "PRAISE", "COMPLIMENT", "FLATTER", "INSULT",
        "OFFEND",
        # physical actions
        "HURT", "WOUND", "INJURE", "HARM", "DAMAGE", "DESTROY", "RUIN",
        "WRECK", "BREAK", "SMASH", "SHATTER", "CRUSH", "SQUASH", "SQUEEZE",
        "PRESS", "PUSH", "PULL", "DRAG", "LIFT", "CARRY", "DROP", "THROW",
        "TOSS", "FLING", "HURL", "PITCH", "CATCH", "GRAB", "SNATCH", "SEIZE",
        "TAKE", "GIVE", "HAND", "PASS",
    }
)

# Letter cues such as "A." or "B C." and bare one/two-letter tokens.
LETTER_CUE_PATTERNS = (
    re.compile(r"^[A-Z\s]{1,3}\.$"),
    re.compile(r"^[A-Z]{1,2}$"),
)

PARENTHETICAL_PATTERN = re.compile(r"\(.*?\)")
HAS_LETTER_PATTERN = re.compile(r"[A-Z]")

# Substrings that mark a generated relationship entry as a screenplay
# direction rather than a person.
RELATIONSHIP_NAME_DENYLIST = (
    "CUT TO:",
    "FADE IN:",
    "FADE OUT:",
    "INT.",
    "EXT.",
    "THWACK.",
    "SQUEAK.",
    "THUD.",
    "PING.",
    "BLINDING WHITE.",
)
