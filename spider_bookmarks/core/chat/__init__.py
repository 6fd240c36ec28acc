from .engine import BaseChatEngine, OllamaChat
from .prompt_manager import PromptManager

__all__ = ['BaseChatEngine', 'OllamaChat', 'PromptManager']
