"""Tests for generation request entities."""

from parley.domain.entities import ChatMessage, ContentPart, Persona, Role


class TestChatMessage:
    def test_user_and_model(self) -> None:
        assert ChatMessage.user("hi").role is Role.USER
        assert ChatMessage.model("hello").role is Role.MODEL

    def test_text_skips_data_parts(self) -> None:
        message = ChatMessage(
            role=Role.USER,
            parts=[
                ContentPart.of_text("look "),
                ContentPart.of_data("image/png", "aGVsbG8="),
                ContentPart.of_text("at this"),
            ],
        )

        assert message.text == "look at this"
        assert not message.parts[1].is_text


class TestPersona:
    def test_system_instructions(self) -> None:
        persona = Persona(
            key="doji",
            name="Doji",
            personality="P",
            character_info="C",
            response_style="S",
        )

        assert persona.system_instructions == "P\n\nC\n\nS"
