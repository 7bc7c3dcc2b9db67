from __future__ import annotations

from codepilot_core.providers.base import BaseReviewer


class AnthropicReviewer(BaseReviewer):
    MODEL = "claude-sonnet-4-20250514"
    # temperature=0.3 for Anthropic: slightly higher than OpenAI's 0.2 to allow
    # more natural phrasing in the feedback while keeping the rewritten code stable.
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, timeout: float = 120.0):
        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'codepilot[anthropic]'"
            )
        # max_retries=0: the SDK would otherwise silently retry 529 overloads,
        # which must reach the user as "busy" instead.
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.TRANSIENT_ERRORS = (anthropic.APIConnectionError,)

    def _call_api(self, system_prompt: str, user_prompt: str) -> tuple[str, bool]:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.MODEL,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks), response.stop_reason == "max_tokens"
