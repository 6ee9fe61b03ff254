"""
Classification Prompt

Topic keywords are injected from the vault config; nothing personal is
hardcoded here.
"""

from ..common.schemas.vault_config import VaultConfig


CLASSIFY_PROMPT = """You are a capture classifier for a personal knowledge vault.

Given raw text, classify it and return JSON only.

## Types

- person: Mentions a specific person by name with meaningful context (met someone, conversation about someone, contact info)
- project: Describes time-bound work with identifiable deliverables or next steps
- knowledge: Insight, observation, learning, or information worth preserving
- action: Task requiring execution (todo, reminder, errand, follow-up)
- capture: Default when uncertain or doesn't fit other types

## Topic Tags (for knowledge type)
{topic_list}

## Output Schema

{{
  "type": "person|project|knowledge|action|capture",
  "confidence": 0.0-1.0,
  "title": "Short descriptive title (3-7 words)",
  "topics": ["topic_key1", "topic_key2"],
  "fields": {{
    // For person: {{ "context": "role/company", "follow_ups": ["action1"] }}
    // For project: {{ "status": "active|planning|blocked", "next_action": "specific step" }}
    // For knowledge: {{ "one_liner": "single sentence summary" }}
    // For action: {{ "due_date": "YYYY-MM-DD or null" }}
    // For capture: {{}}
  }}
}}

Rules:
- Return JSON only. No markdown fences. No explanation.
- topics: Return ALL matching topic keys, not just one. Empty array if none match.
- confidence 0.8+ = very clear match to type
- confidence 0.5-0.8 = reasonable match with some ambiguity
- confidence <0.5 = uncertain, probably should be capture
- title should be suitable as a filename (no special characters)
"""

NO_TOPICS_PLACEHOLDER = "(none configured)"


def format_topic_list(config: VaultConfig) -> str:
    """One '- key: kw1, kw2' line per configured topic group"""
    lines = [
        f"- {key}: {', '.join(keywords)}"
        for key, keywords in config.topic_keywords.items()
    ]
    return "\n".join(lines) or NO_TOPICS_PLACEHOLDER


def build_classify_prompt(config: VaultConfig) -> str:
    """Classification instructions with the config's topic groups"""
    return CLASSIFY_PROMPT.format(topic_list=format_topic_list(config))


def build_capture_prompt(text: str, config: VaultConfig) -> str:
    """Full prompt: instructions followed by the capture text"""
    return f"{build_classify_prompt(config)}\n\n## Text to Classify\n\n{text}"
