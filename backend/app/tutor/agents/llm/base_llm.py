"""Completion gateway interface with an Echo implementation."""

from typing import Dict, List, Optional, Sequence

NO_RESPONSE_PLACEHOLDER = "(응답 없음)"
RECENT_HISTORY_HEADER = "최근 대화"


def build_chat_messages(
    system_text: str, prior_turns: Sequence[str], final_user_text: str
) -> List[Dict[str, str]]:
    """Render the gateway arguments as a chat payload: one system and one user message.

    Prior turns go into the user message under a "recent conversation" header,
    separated from the final line by a blank line so the model can tell
    history from the new request.
    """
    if prior_turns:
        history = "\n".join(prior_turns)
        user_content = f"{RECENT_HISTORY_HEADER}\n{history}\n\n{final_user_text}"
    else:
        user_content = final_user_text
    return [
        {"role": "system", "content": system_text},
        {"role": "user", "content": user_content},
    ]


class BaseLLM:
    """Abstract base class for text completion gateways."""

    def complete(
        self,
        system_text: str,
        prior_turns: Sequence[str],
        final_user_text: str,
        temperature: Optional[float] = None,
        placeholder: Optional[str] = None,
    ) -> str:
        """
        Generate a reply for the given prompt.

        Args:
            system_text (str): Instructions (plus any summary block).
            prior_turns (Sequence[str]): Already rendered "<label>: <content>" lines,
                oldest first.
            final_user_text (str): The new request, rendered distinct from history.
            temperature (Optional[float]): Overrides the gateway default.
            placeholder (Optional[str]): Text returned instead of an empty completion.

        Returns:
            str: The generated text, never empty.

        Raises:
            CompletionFailedError: The provider or transport failed.
        """
        raise NotImplementedError


class EchoLLM(BaseLLM):
    """Offline gateway (does not call any API)."""

    def complete(
        self,
        system_text: str,
        prior_turns: Sequence[str],
        final_user_text: str,
        temperature: Optional[float] = None,
        placeholder: Optional[str] = None,
    ) -> str:
        """Echo the final user line to simulate a completion."""
        if not final_user_text.strip():
            return placeholder or NO_RESPONSE_PLACEHOLDER
        return f"[EchoLLM] {final_user_text}"
