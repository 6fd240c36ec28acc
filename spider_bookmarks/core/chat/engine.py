import logging
from typing import Dict, List, Any, Optional

import requests

logger = logging.getLogger(__name__)

# Tried in order of preference
OLLAMA_MODELS = ["mistral", "llama2", "llama3", "gemma", "phi"]
DEFAULT_MODEL = "mistral"

SETUP_HELP_MESSAGE = """I'm having trouble connecting to my brain right now. To use the WebSense AI, you'll need to:

1. Install Ollama from ollama.com
2. Run the application
3. Install a model by running 'ollama pull mistral' in your terminal

Once Ollama is running, I'll be able to help you organize and manage your bookmarks more effectively!"""


###############################################################################
# Base Chat Engine Interface
###############################################################################
class BaseChatEngine:
    """
    Abstract interface for chat engines.
    All chat engines must implement the generate_response method.
    """
    def generate_response(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        raise NotImplementedError("generate_response must be implemented by subclasses")


###############################################################################
# Ollama Chat Engine Implementation
###############################################################################
class OllamaChat(BaseChatEngine):
    """
    Chat engine backed by a local Ollama server.

    Never raises for connection or API problems; the result dict carries
    ``success: False`` and a message telling the user how to set Ollama up.
    """
    def __init__(self, base_url: str = "http://localhost:11434", timeout: float = 60,
                 preferred_models: Optional[List[str]] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.preferred_models = preferred_models or list(OLLAMA_MODELS)

    def select_model(self) -> str:
        """Pick the first preferred model the server has pulled"""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=self.timeout)
            if response.ok:
                available = [
                    model.get('name', '').lower()
                    for model in response.json().get('models') or []
                ]
                for model in self.preferred_models:
                    if model in available or any(name.startswith(model) for name in available):
                        return model
        except (requests.RequestException, ValueError) as e:
            logger.info(f"Could not fetch available models, using default: {e}")
        return DEFAULT_MODEL

    def generate_response(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        try:
            model = self.select_model()
            response = requests.post(
                f"{self.base_url}/api/chat",
                json={
                    'model': model,
                    'messages': [{'role': m['role'], 'content': m['content']} for m in messages],
                    'stream': False,
                    'options': {
                        'temperature': 0.7,
                        'num_predict': 1024,
                    },
                },
                timeout=self.timeout,
            )
            if not response.ok:
                raise RuntimeError(f"Ollama API error: {response.status_code}")

            data = response.json()
            content = (data.get('message') or {}).get('content')
            return {
                'content': content or "I couldn't generate a response at this time.",
                'success': True,
            }
        except (requests.RequestException, RuntimeError, ValueError) as e:
            logger.error(f"Error calling Ollama: {e}")
            return {
                'content': SETUP_HELP_MESSAGE,
                'success': False,
                'error': str(e),
            }
