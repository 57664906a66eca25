"""Opinion marker extraction."""

import re

OPINION_MARKER = "My opinion of {name} is: "


def extract_opinion(text: str, subject_name: str) -> tuple[str, str | None]:
    """Split an opinion marker out of generated text.

    The marker is matched case-insensitively and runs to the end of its line.
    Only the first marker is removed.

    Args:
        text: Generated reply.
        subject_name: Name of the user the opinion is about.

    Returns:
        Tuple of (visible reply, extracted opinion or None).
    """
    pattern = re.compile(
        re.escape(OPINION_MARKER.format(name=subject_name)) + r"(.*)",
        re.IGNORECASE,
    )
    match = pattern.search(text)
    if match is None or not match.group(1).strip():
        return text, None

    opinion = match.group(1).strip()
    visible = pattern.sub("", text, count=1).strip()
    return visible, opinion
