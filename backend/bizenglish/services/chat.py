"""
Persona Chat Service

Text-mode practice: the AI plays a business persona and pitches its
language to the learner's CEFR level.
"""
import logging
from typing import Dict, List
from ..models.conversation import Conversation
from .text_generation import chat_completion

logger = logging.getLogger("uvicorn.error")

SKILL_LEVEL_INSTRUCTIONS: Dict[str, str] = {
    "A1": "Use only basic vocabulary and simple present tense. Speak slowly with very simple sentences. Maximum 5-6 words per sentence.",
    "A2": "Use common everyday expressions and basic phrases. Simple past and future tenses are okay. Keep sentences short and clear.",
    "B1": "Use standard vocabulary for work situations. Can use all basic tenses. Sentences can be longer but should remain clear and straightforward.",
    "B2": "Use more complex business vocabulary and idiomatic expressions. Can use all tenses including conditionals. Natural flowing sentences.",
    "C1": "Use sophisticated business terminology and complex grammatical structures. Include idioms, phrasal verbs, and nuanced expressions.",
    "C2": "Use native-level vocabulary with full range of idiomatic expressions, colloquialisms, and specialized business jargon. Complex and nuanced language.",
}

GREETINGS: Dict[str, str] = {
    "hr-manager": "Hello! I'm the HR manager. Let's discuss the topic at hand.",
    "venture-capitalist": "Good to meet you. I'm interested in hearing about your business.",
    "client": "Hi there! I'm looking forward to our discussion.",
    "ceo": "Welcome. Let's get straight to business.",
    "colleague": "Hey! Ready to collaborate on this?",
    "supplier": "Hello! I'm here to discuss our business arrangement.",
}
DEFAULT_GREETING = "Hello! Let's begin our conversation."

REPLY_TEMPERATURE = 0.7
REPLY_MAX_TOKENS = 200


def initial_greeting(persona: str) -> str:
    return GREETINGS.get(persona, DEFAULT_GREETING)


def persona_system_prompt(topic: str, persona: str, skill_level: str) -> str:
    level = skill_level if skill_level in SKILL_LEVEL_INSTRUCTIONS else "B1"
    return f"""You are a {persona} in a business setting discussing "{topic}".

CRITICAL: Adapt your language to {level} level: {SKILL_LEVEL_INSTRUCTIONS[level]}

Your role:
- Stay in character as a {persona}
- Keep the conversation focused on {topic}
- Be helpful but realistic for a business scenario
- Provide constructive feedback when appropriate
- Keep responses concise (2-3 sentences for lower levels, 3-4 for higher levels)

Remember to match the learner's level - don't use language that's too advanced or too simple for {level}."""


async def reply(conversation: Conversation, messages: List[Dict[str, str]]) -> str:
    """
    The persona's next message.

    Raises:
        ConfigurationError: OPENAI_API_KEY is not set
        ProviderUnavailableError: chat completion failed
    """
    prompt = persona_system_prompt(conversation.topic, conversation.persona, conversation.skill_level)
    text = await chat_completion.complete(
        prompt,
        messages,
        temperature=REPLY_TEMPERATURE,
        max_tokens=REPLY_MAX_TOKENS,
    )
    logger.info("[chat] %s replied in conversation %s (%d chars)", conversation.persona, conversation.id, len(text))
    return text.strip()
