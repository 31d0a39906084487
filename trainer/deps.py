# trainer/deps.py
from functools import lru_cache

from .ai.persona_ai import PersonaConversationAI
from .ai.speech import GeminiSpeechSynthesizer
from .services.conversation_cache import ConversationCache


# 프로세스 단위 싱글턴 (테스트에서는 app.dependency_overrides로 교체)
@lru_cache
def get_conversation_cache() -> ConversationCache:
    return ConversationCache()


@lru_cache
def get_persona_ai() -> PersonaConversationAI:
    return PersonaConversationAI()


@lru_cache
def get_speech_synthesizer() -> GeminiSpeechSynthesizer:
    return GeminiSpeechSynthesizer()
