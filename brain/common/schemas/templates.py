"""
Note Templates

Renders a Classification into a markdown note with frontmatter, a tag line,
type-specific content, and the original capture text.
"""

from typing import List, Optional, Tuple, TYPE_CHECKING

from .classification import (
    ActionFields,
    CaptureType,
    KnowledgeFields,
    PersonFields,
    ProjectFields,
)

if TYPE_CHECKING:
    from .classification import Classification
    from .vault_config import VaultConfig


NOTE_TEMPLATE = """---
type: {type}
confidence: {confidence}
captured: {date}
tags: [{frontmatter_tags}]
---

{tag_line}

# {title}

{type_content}<details>
<summary>Original capture</summary>

{raw_text}

</details>

---
*Captured via Telegram: {timestamp}*"""


def build_tags(capture_type: str, topics: List[str], config: "VaultConfig") -> List[str]:
    """Build the tag list for a capture: type, source, topics, review marker"""
    capture_type = CaptureType(capture_type).value
    type_tags = config.type_tags

    tags = [type_tags.get(capture_type) or f"#{capture_type}"]
    tags.append(type_tags.get("telegram") or "#telegram")
    for topic in topics:
        tags.append(f"#{topic}")

    # capture is the uncertain bucket
    if capture_type == CaptureType.CAPTURE.value:
        tags.append(type_tags.get("needs_review") or "#needs-review")

    return tags


def _format_confidence(value: float) -> str:
    """0.85 -> '0.85', 0.0 -> '0', 1.0 -> '1'"""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _render_person(fields: PersonFields) -> Optional[str]:
    lines = []
    if fields.context:
        lines.append(f"**Context**: {fields.context}")
    if fields.follow_ups:
        lines.append("")
        lines.append("## Follow-ups")
        lines.extend(f"- [ ] {item}" for item in fields.follow_ups)
    return "\n".join(lines) if lines else None


def _render_project(fields: ProjectFields) -> Optional[str]:
    lines = []
    if fields.status:
        lines.append(f"**Status**: {fields.status}")
    if fields.next_action:
        lines.append(f"**Next action**: {fields.next_action}")
    return "\n".join(lines) if lines else None


def _render_knowledge(fields: KnowledgeFields) -> Optional[str]:
    if fields.one_liner:
        return f"> {fields.one_liner}"
    return None


def _render_action(fields: ActionFields) -> str:
    lines = []
    if fields.due_date:
        lines.append(f"**Due**: {fields.due_date}")
    lines.append("")
    lines.append("- [ ] Complete this action")
    return "\n".join(lines)


def render_type_content(classification: "Classification") -> Optional[str]:
    """Type-specific block, or None when there is nothing to show"""
    renderers = {
        CaptureType.PERSON: _render_person,
        CaptureType.PROJECT: _render_project,
        CaptureType.KNOWLEDGE: _render_knowledge,
        CaptureType.ACTION: _render_action,
    }
    renderer = renderers.get(classification.type)
    if renderer is None:
        return None
    return renderer(classification.fields)


def render_note(
    classification: "Classification",
    raw_text: str,
    timestamp: str,
    config: "VaultConfig",
) -> Tuple[str, List[str]]:
    """
    Render a complete markdown note.

    Args:
        classification: Validated or fallback classification
        raw_text: Original capture text
        timestamp: ISO-8601 capture timestamp
        config: Vault config (type tags)

    Returns:
        (document, tags)
    """
    tags = build_tags(classification.type.value, classification.topics, config)
    type_content = render_type_content(classification)

    document = NOTE_TEMPLATE.format(
        type=classification.type.value,
        confidence=_format_confidence(classification.confidence),
        date=timestamp.split("T")[0],
        frontmatter_tags=", ".join(tag.replace("#", "", 1) for tag in tags),
        tag_line=" ".join(tags),
        title=classification.title,
        type_content=f"{type_content}\n\n" if type_content else "",
        raw_text=raw_text,
        timestamp=timestamp,
    )
    return document, tags
