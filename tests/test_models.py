"""
Tests for the conversation message models.
"""
import pytest
from pydantic import ValidationError

from bmw_assistant.models import (
    Attachment,
    AssistantMessage,
    DeliveryStatus,
    MessageLog,
    UserMessage,
    generate_message_id,
    greeting_message,
    placeholder_content,
)


# ===========================
# Identity Tests
# ===========================

@pytest.mark.unit
def test_message_ids_are_unique():
    """Test generated ids do not collide within the same millisecond."""
    ids = {generate_message_id() for _ in range(500)}
    assert len(ids) == 500


@pytest.mark.unit
def test_message_defaults():
    """Test new user messages start as sending with an id and timestamp."""
    message = UserMessage(content="Hello")

    assert message.role == "user"
    assert message.status == DeliveryStatus.SENDING
    assert message.id
    assert message.timestamp > 0
    assert message.attachments == []


@pytest.mark.unit
def test_blank_content_rejected():
    """Test a message must have non-blank content."""
    with pytest.raises(ValidationError):
        UserMessage(content="   ")

    with pytest.raises(ValidationError):
        AssistantMessage(content="")


@pytest.mark.unit
def test_assistant_message_has_no_status():
    """Test only user messages carry a delivery status."""
    with pytest.raises(ValidationError):
        AssistantMessage(content="Hi", status="failed")


@pytest.mark.unit
def test_messages_are_immutable():
    """Test messages cannot be mutated in place."""
    message = UserMessage(content="Hello")

    with pytest.raises(ValidationError):
        message.content = "Changed"


@pytest.mark.unit
def test_with_status_keeps_everything_else():
    """Test status changes produce a copy identical apart from status."""
    original = UserMessage(
        content="Hello",
        attachments=[Attachment(name="plan.pdf", mime_type="application/pdf", byte_size=10)],
        status=DeliveryStatus.FAILED,
    )

    updated = original.with_status(DeliveryStatus.SENDING)

    assert updated.status == DeliveryStatus.SENDING
    assert original.status == DeliveryStatus.FAILED
    assert updated.model_dump(exclude={"status"}) == original.model_dump(exclude={"status"})


# ===========================
# Wire Format Tests
# ===========================

@pytest.mark.unit
def test_user_message_wire_format():
    """Test attachments are reduced to name, type and extracted text."""
    message = UserMessage(
        content="What colour is this?",
        attachments=[
            Attachment(
                name="wall.png",
                mime_type="image/png",
                byte_size=2048,
                remote_url="https://files.example/wall.png",
                preview_url="data:image/png;base64,AAAA",
                extracted_content="A red brick wall",
            )
        ],
    )

    assert message.to_wire() == {
        "role": "user",
        "content": "What colour is this?",
        "attachments": [
            {"name": "wall.png", "type": "image/png", "content": "A red brick wall"}
        ],
    }


@pytest.mark.unit
def test_wire_format_omits_empty_attachments():
    """Test messages without attachments send role and content only."""
    assert UserMessage(content="Hi").to_wire() == {"role": "user", "content": "Hi"}
    assert AssistantMessage(content="Hello").to_wire() == {"role": "assistant", "content": "Hello"}


@pytest.mark.unit
def test_log_validation_discriminates_on_role():
    """Test stored logs are parsed into the right message types."""
    raw = (
        '[{"id": "1", "role": "assistant", "content": "Hi", "timestamp": 1},'
        ' {"id": "2", "role": "user", "content": "Brick?", "timestamp": 2, "status": "failed",'
        '  "attachments": [{"name": "a.pdf", "mimeType": "application/pdf", "byteSize": 3}]}]'
    )

    messages = MessageLog.validate_json(raw)

    assert isinstance(messages[0], AssistantMessage)
    assert isinstance(messages[1], UserMessage)
    assert messages[1].status == DeliveryStatus.FAILED
    assert messages[1].attachments[0].mime_type == "application/pdf"
    assert messages[1].attachments[0].byte_size == 3


@pytest.mark.unit
def test_unknown_role_rejected():
    """Test logs with an unknown role fail validation."""
    with pytest.raises(ValidationError):
        MessageLog.validate_json('[{"id": "1", "role": "system", "content": "x", "timestamp": 1}]')


# ===========================
# Helper Tests
# ===========================

@pytest.mark.unit
def test_attachment_uploaded_flag():
    """Test an attachment is uploaded only when it has a remote URL."""
    assert Attachment(name="a.pdf", remote_url="https://x/a.pdf").uploaded is True
    assert Attachment(name="a.pdf", extracted_content="[failed]").uploaded is False


@pytest.mark.unit
def test_without_preview():
    """Test preview references can be dropped from an attachment."""
    attachment = Attachment(name="a.png", preview_url="file:///tmp/a.png")

    assert attachment.without_preview().preview_url is None
    assert attachment.preview_url == "file:///tmp/a.png"


@pytest.mark.unit
def test_placeholder_content():
    """Test display text for attachment-only messages."""
    attachments = [Attachment(name="plan.pdf"), Attachment(name="tile.png")]

    assert placeholder_content(attachments) == "Attached: plan.pdf, tile.png"
    assert placeholder_content([]) == "Attached files"


@pytest.mark.unit
def test_greeting_message():
    """Test greeting is a fresh assistant message."""
    first = greeting_message("Hello!")
    second = greeting_message("Hello!")

    assert isinstance(first, AssistantMessage)
    assert first.content == "Hello!"
    assert first.id != second.id
