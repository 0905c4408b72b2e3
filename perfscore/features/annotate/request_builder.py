"""Builds the chat-completion request body for the annotation call."""

from perfscore.features.annotate.config import AnnotationClientConfig
from perfscore.features.annotate.prompts import SYSTEM_PROMPT, USER_PROMPT


class AnnotationRequestBuilder:
    """Constructs the fixed prompt payload with an attached image.

    Stateless apart from the immutable configuration it reads model and
    sampling parameters from.
    """

    def __init__(
        self,
        config: AnnotationClientConfig,
        system_prompt: str = SYSTEM_PROMPT,
        user_prompt: str = USER_PROMPT,
    ) -> None:
        """Initialize the builder.

        Args:
            config: Client configuration.
            system_prompt: System message text.
            user_prompt: Instruction text sent with the image.
        """
        self._config = config
        self._system_prompt = system_prompt
        self._user_prompt = user_prompt

    def build_body(self, image_data_url: str) -> dict[str, object]:
        """Build the request body for one image.

        Args:
            image_data_url: Image encoded as a base64 data URL.

        Returns:
            JSON-serializable request body.
        """
        return {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": self._system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self._user_prompt},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": image_data_url,
                                "detail": self._config.image_detail,
                            },
                        },
                    ],
                },
            ],
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
            "response_format": {"type": "json_object"},
        }

    @staticmethod
    def build_headers(api_key: str) -> dict[str, str]:
        """Build request headers with bearer authentication."""
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
