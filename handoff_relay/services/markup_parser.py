"""
Parser for the chatbot "micro language" used in fulfillment texts.

Supported lines:

    * Label                      text button
    * Label https://example.com  link button opened in a new window
    * Label < https://...        link button opened in the parent window
    * Label > https://...        link button opened in the same window
    tdImage:https://...          image message (tdImage,300x200:... sets size)
    tdFrame:https://...          embedded frame
    tdVideo:https://...          embedded video frame

Everything else is kept as message text.
"""

import re
from typing import Any, Optional

from handoff_relay.schemas.tiledesk import OutboundMessage

BUTTON_RE = re.compile(r"^\*\s+(?P<label>.+?)\s*(?:(?P<target>[<>])\s*)?(?P<link>https?://\S+)?\s*$")
IMAGE_RE = re.compile(r"^tdImage(?:,(?P<width>\d+)x(?P<height>\d+))?:(?P<src>\S+)\s*$")
FRAME_RE = re.compile(r"^td(?:Frame|Video):(?P<src>\S+)\s*$")

LINK_TARGETS = {None: "blank", "<": "parent", ">": "self"}


def parse_button(line: str) -> Optional[dict[str, Any]]:
    match = BUTTON_RE.match(line.strip())
    if not match:
        return None
    label = match.group("label")
    link = match.group("link")
    if not link:
        return {"type": "text", "value": label}
    return {
        "type": "url",
        "value": label,
        "link": link,
        "target": LINK_TARGETS[match.group("target")],
    }


def parse_reply(text: str) -> OutboundMessage:
    """Turn fulfillment text into a structured chat message."""
    text_lines = []
    buttons = []
    message_type = "text"
    metadata: Optional[dict[str, Any]] = None

    for line in (text or "").splitlines():
        stripped = line.strip()

        button = parse_button(stripped) if stripped.startswith("*") else None
        if button:
            buttons.append(button)
            continue

        image = IMAGE_RE.match(stripped)
        if image:
            message_type = "image"
            metadata = {"src": image.group("src")}
            if image.group("width"):
                metadata["width"] = int(image.group("width"))
                metadata["height"] = int(image.group("height"))
            continue

        frame = FRAME_RE.match(stripped)
        if frame:
            message_type = "frame"
            metadata = {"src": frame.group("src")}
            continue

        text_lines.append(line)

    attributes = None
    if buttons:
        attributes = {"attachment": {"type": "template", "buttons": buttons}}

    return OutboundMessage(
        text="\n".join(text_lines).strip(),
        type=message_type,
        attributes=attributes,
        metadata=metadata,
    )
