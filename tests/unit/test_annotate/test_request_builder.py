"""Unit tests for the annotation request builder."""

from perfscore.features.annotate.config import AnnotationClientConfig
from perfscore.features.annotate.prompts import SYSTEM_PROMPT, USER_PROMPT
from perfscore.features.annotate.request_builder import AnnotationRequestBuilder


DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class TestBuildBody:
    """Tests for AnnotationRequestBuilder.build_body."""

    def test_body_shape(self) -> None:
        """Should build the chat-completion body with the image attached."""
        builder = AnnotationRequestBuilder(AnnotationClientConfig())

        body = builder.build_body(DATA_URL)

        assert body == {
            "model": "inference-net/cliptagger-12b",
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": DATA_URL, "detail": "high"},
                        },
                    ],
                },
            ],
            "temperature": 0.1,
            "max_tokens": 2000,
            "response_format": {"type": "json_object"},
        }

    def test_uses_configured_model(self) -> None:
        """Should read model and sampling parameters from config."""
        config = AnnotationClientConfig(model="other/model", temperature=0.0)
        builder = AnnotationRequestBuilder(config)

        body = builder.build_body(DATA_URL)

        assert body["model"] == "other/model"
        assert body["temperature"] == 0.0

    def test_custom_prompts(self) -> None:
        """Should allow overriding the prompt texts."""
        builder = AnnotationRequestBuilder(
            AnnotationClientConfig(), system_prompt="sys", user_prompt="usr"
        )

        body = builder.build_body(DATA_URL)

        messages = body["messages"]
        assert messages[0]["content"] == "sys"  # type: ignore[index]
        assert messages[1]["content"][0]["text"] == "usr"  # type: ignore[index]

    def test_builder_is_stateless(self) -> None:
        """Should produce identical bodies for repeated calls."""
        builder = AnnotationRequestBuilder(AnnotationClientConfig())

        assert builder.build_body(DATA_URL) == builder.build_body(DATA_URL)


class TestPrompts:
    """Tests for the fixed prompt texts."""

    def test_system_prompt_demands_json_only(self) -> None:
        """Should put the JSON-only instruction in the system message."""
        assert "Output **only the JSON**" in SYSTEM_PROMPT
        assert "JSON" not in USER_PROMPT

    def test_system_prompt_names_every_field(self) -> None:
        """Should mention every annotation field."""
        for field_name in (
            "description",
            "objects",
            "actions",
            "environment",
            "content_type",
            "specific_style",
            "production_quality",
            "summary",
            "logos",
        ):
            assert field_name in SYSTEM_PROMPT


class TestBuildHeaders:
    """Tests for request headers."""

    def test_bearer_header(self) -> None:
        """Should send bearer auth and a JSON content type."""
        headers = AnnotationRequestBuilder.build_headers("secret")

        assert headers == {
            "Authorization": "Bearer secret",
            "Content-Type": "application/json",
        }
