from .sequence_analyzer import SequenceLogicAnalyzer
from .situation_manager import DynamicSituationManager, is_higher_position
from .persona_ai import PersonaConversationAI
from .gemini_client import build_client, extract_json, lenient_json_loads
from .speech import GeminiSpeechSynthesizer, SpeechSynthesisError

__all__ = [
    "SequenceLogicAnalyzer",
    "DynamicSituationManager",
    "is_higher_position",
    "PersonaConversationAI",
    "build_client",
    "extract_json",
    "lenient_json_loads",
    "GeminiSpeechSynthesizer",
    "SpeechSynthesisError",
]
