"""Tests for OpenAITransformer."""

from augment_proxy.gateway.transforms.openai import OpenAITransformer
from augment_proxy.gateway.transforms.types import (
    ImageBlock,
    ImageSource,
    InboundMessage,
    OpaqueBlock,
    TextBlock,
    parse_content_block,
    parse_message,
)


class TestConvertBlock:
    """Tests for single content block conversion."""

    def test_text_block(self):
        """Text blocks become text parts."""
        transformer = OpenAITransformer()

        assert transformer.convert_block(TextBlock(text="hi")) == {"type": "text", "text": "hi"}

    def test_base64_image(self):
        """Base64 images become data URLs."""
        transformer = OpenAITransformer()
        block = ImageBlock(source=ImageSource(type="base64", media_type="image/png", data="AAAA"))

        assert transformer.convert_block(block) == {
            "type": "image_url",
            "image_url": {"url": "data:image/png;base64,AAAA"},
        }

    def test_url_image(self):
        """URL images keep their URL."""
        transformer = OpenAITransformer()
        block = ImageBlock(source=ImageSource(type="url", url="https://example.com/cat.png"))

        assert transformer.convert_block(block) == {
            "type": "image_url",
            "image_url": {"url": "https://example.com/cat.png"},
        }

    def test_unsupported_image_source_dropped(self):
        """Image sources other than base64 and url produce nothing."""
        transformer = OpenAITransformer()
        block = ImageBlock(source=ImageSource(type="file"))

        assert transformer.convert_block(block) is None

    def test_tool_use_block(self):
        """tool_use keeps id, name and input."""
        transformer = OpenAITransformer()
        block = parse_content_block(
            {"type": "tool_use", "id": "toolu_1", "name": "read", "input": {"path": "a.py"}}
        )

        assert transformer.convert_block(block) == {
            "type": "tool_use",
            "id": "toolu_1",
            "name": "read",
            "input": {"path": "a.py"},
        }

    def test_tool_result_block(self):
        """tool_result keeps the tool_use_id and content."""
        transformer = OpenAITransformer()
        block = parse_content_block(
            {"type": "tool_result", "tool_use_id": "toolu_1", "content": "file contents"}
        )

        assert transformer.convert_block(block) == {
            "type": "tool_result",
            "tool_use_id": "toolu_1",
            "content": "file contents",
        }

    def test_unknown_block_forwarded_verbatim(self):
        """Unrecognized blocks are passed through unchanged."""
        transformer = OpenAITransformer()
        raw = {"type": "thinking", "thinking": "hmm", "signature": "sig"}

        block = parse_content_block(raw)

        assert isinstance(block, OpaqueBlock)
        assert block.type == "thinking"
        assert transformer.convert_block(block) == raw


class TestConvertContent:
    """Tests for message content conversion."""

    def test_string_content_unchanged(self):
        """String content stays a string."""
        assert OpenAITransformer().convert_content("Hello") == "Hello"

    def test_single_text_part_collapses(self):
        """A lone text part becomes plain string content."""
        message = parse_message({"role": "user", "content": [{"type": "text", "text": "X"}]})

        assert OpenAITransformer().convert_content(message.content) == "X"

    def test_multiple_parts_kept_in_order(self):
        """Mixed parts stay a list in their original order."""
        message = parse_message(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Look:"},
                    {"type": "image", "source": {"type": "url", "url": "https://x/y.png"}},
                ],
            }
        )

        result = OpenAITransformer().convert_content(message.content)

        assert [part["type"] for part in result] == ["text", "image_url"]

    def test_dropped_image_can_collapse_remaining_text(self):
        """After dropping an unsupported image, a lone text part collapses."""
        message = parse_message(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "only text"},
                    {"type": "image", "source": {"type": "file", "file_id": "f1"}},
                ],
            }
        )

        assert OpenAITransformer().convert_content(message.content) == "only text"

    def test_single_non_text_part_stays_list(self):
        """A lone non-text part is not collapsed."""
        message = parse_message(
            {
                "role": "user",
                "content": [{"type": "tool_result", "tool_use_id": "t", "content": "ok"}],
            }
        )

        result = OpenAITransformer().convert_content(message.content)

        assert isinstance(result, list)
        assert len(result) == 1


class TestConvertMessages:
    """Tests for conversation conversion."""

    def test_roles_and_order_preserved(self):
        """User and assistant messages keep role and order."""
        result = OpenAITransformer().convert_messages(
            [
                {"role": "user", "content": "A"},
                {"role": "assistant", "content": [{"type": "text", "text": "B"}]},
                {"role": "user", "content": "C"},
            ]
        )

        assert result == [
            {"role": "user", "content": "A"},
            {"role": "assistant", "content": "B"},
            {"role": "user", "content": "C"},
        ]

    def test_system_messages_dropped(self):
        """System-role messages are omitted."""
        result = OpenAITransformer().convert_messages(
            [
                {"role": "system", "content": "hidden"},
                {"role": "user", "content": "visible"},
            ]
        )

        assert result == [{"role": "user", "content": "visible"}]

    def test_accepts_parsed_messages(self):
        """Already-parsed messages are accepted."""
        message = InboundMessage(role="user", content=(TextBlock(text="hi"),))

        assert OpenAITransformer().convert_messages([message]) == [
            {"role": "user", "content": "hi"}
        ]

    def test_missing_content_becomes_empty_string(self):
        """A message without content converts to empty content."""
        assert OpenAITransformer().convert_messages([{"role": "user"}]) == [
            {"role": "user", "content": ""}
        ]


class TestConvertTools:
    """Tests for tool declaration conversion."""

    def test_anthropic_tool(self):
        """Anthropic tools become function declarations."""
        result = OpenAITransformer().convert_tools(
            [{"name": "search", "description": "Search", "input_schema": {"type": "object"}}]
        )

        assert result == [
            {
                "type": "function",
                "function": {
                    "name": "search",
                    "description": "Search",
                    "parameters": {"type": "object"},
                },
            }
        ]

    def test_function_tool_passes_through(self):
        """Tools already in function form are kept."""
        tool = {"type": "function", "function": {"name": "f", "parameters": {}}}

        assert OpenAITransformer().convert_tools([tool]) == [tool]
