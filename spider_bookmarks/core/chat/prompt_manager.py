from typing import Dict, List

ALLOWED_ROLES = ('user', 'assistant')


class PromptManager:
    """
    Holds the assistant persona and turns client chat history into the
    message list sent to the model.
    """

    def __init__(self):
        self.system_prompt = (
            "You are WebSense, an AI assistant for SpiderBookmarks, a bookmark "
            "management application. Your purpose is to help users organize their "
            "bookmarks efficiently and provide tips for better web browsing "
            "productivity. You have a friendly, helpful personality with a touch of "
            "Spider-Man themed humor. When appropriate, include Spider-Man references "
            "or web-related puns in your responses. Keep responses concise and focused "
            "on helping the user manage their digital web of bookmarks."
        )

    def validate_messages(self, messages) -> List[Dict[str, str]]:
        """
        Check a client-supplied history and return a clean copy.
        Raises ValueError describing the first bad entry.
        """
        if not isinstance(messages, list):
            raise ValueError("Invalid request format. Expected an array of messages.")

        cleaned = []
        for idx, message in enumerate(messages):
            if not isinstance(message, dict):
                raise ValueError(f"Message {idx} must be an object with role and content")
            role = message.get('role')
            content = message.get('content')
            if role not in ALLOWED_ROLES:
                raise ValueError(f"Message {idx} has unsupported role: {role!r}")
            if not isinstance(content, str):
                raise ValueError(f"Message {idx} content must be a string")
            cleaned.append({'role': role, 'content': content})
        return cleaned

    def build_messages(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """Prepend the persona to the conversation"""
        return [{'role': 'system', 'content': self.system_prompt}] + list(messages)
