"""
Attachment and remote service clients used by the chat session.
"""
from .attachment_encoder import (
    AttachmentEncoder,
    LocalFile,
    PendingAttachment,
    PreviewRegistry,
)
from .upload_pipeline import (
    UploadPipeline,
    UploadError,
    UploadHTTPError,
    UploadPayloadError,
)
from .completion_client import (
    CompletionClient,
    CompletionReply,
    CompletionError,
    CompletionHTTPError,
    CompletionPayloadError,
)

__all__ = [
    'AttachmentEncoder',
    'LocalFile',
    'PendingAttachment',
    'PreviewRegistry',
    'UploadPipeline',
    'UploadError',
    'UploadHTTPError',
    'UploadPayloadError',
    'CompletionClient',
    'CompletionReply',
    'CompletionError',
    'CompletionHTTPError',
    'CompletionPayloadError',
]
