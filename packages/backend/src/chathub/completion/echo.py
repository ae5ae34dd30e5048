"""Echo provider — deterministic local replies for development."""

from chathub.completion.base import CompletionProvider, Turn


class EchoProvider(CompletionProvider):
    @property
    def name(self) -> str:
        return "echo"

    async def complete(self, turns: list[Turn]) -> str:
        user_turns = [t["content"] for t in turns if t.get("role") == "user"]
        prompt = user_turns[-1] if user_turns else "No message provided"
        return f"Echo: {prompt}"
