from typing import Generator, List, Optional

from .api import Client


class ChatSession:
    """Keeps a running conversation with one model and streams replies."""

    def __init__(self, client: Client, model: str, system_prompt: Optional[str] = None,
                 temperature: Optional[float] = None):
        self.client = client
        self.model = model
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.history: List[dict] = []
        self.reset()

    def reset(self):
        if self.system_prompt:
            self.history = [{"role": "system", "content": self.system_prompt}]
        else:
            self.history = []

    def set_model(self, model: str):
        self.model = model
        if len(self.history) <= 1:
            self.reset()

    def send(self, user_input: str) -> Generator[str, None, None]:
        """Stream the reply to ``user_input``, recording both turns.

        The user turn is rolled back if the request fails or the reply is
        abandoned (Ctrl-C, or closing the generator) so that a retry does not
        send it twice.
        """
        self.history.append({"role": "user", "content": user_input})

        parts = []
        try:
            stream = self.client.chat.completions.create_stream(
                model=self.model,
                messages=list(self.history),
                temperature=self.temperature,
            )
            with stream:
                for chunk in stream:
                    text = chunk.delta_text
                    if text:
                        parts.append(text)
                        yield text
        except BaseException:
            self.history.pop()
            raise

        reply = "".join(parts)
        if reply:
            self.history.append({"role": "assistant", "content": reply})
