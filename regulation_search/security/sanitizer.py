"""
Input sanitization and prompt injection guards.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Patterns that indicate potential prompt injection
INSTRUCTION_PATTERNS = [
    r'\[INST\]',
    r'\[/INST\]',
    r'</s>',
    r'<s>',
    r'### Instruction:',
    r'### Response:',
    r'System:',
    r'User:',
    r'Assistant:',
    r'Ignore previous instructions',
    r'Forget everything',
    r'You are now',
    r'Act as if',
    r'Pretend to be',
    r'(以前|前)の指示を(すべて|全て)?無視(して|しろ|せよ)?',
    r'あなたは今から',
    r'システム(プロンプト|メッセージ)[:：]',
]


def sanitize_query(query: str, max_length: int = 500) -> str:
    """
    Sanitize user query before it is embedded in the scoring prompt.

    Args:
        query: User query string
        max_length: Maximum allowed length

    Returns:
        Sanitized query string
    """
    if not query:
        return ""

    query = query.strip()

    if len(query) > max_length:
        logger.warning(f"Query truncated from {len(query)} to {max_length} characters")
        query = query[:max_length]

    for pattern in INSTRUCTION_PATTERNS:
        query = re.sub(pattern, '', query, flags=re.IGNORECASE)

    query = re.sub(r'<[^>]+>', '', query)

    # Includes the ideographic space
    query = re.sub(r'\s+', ' ', query).strip()

    return query
