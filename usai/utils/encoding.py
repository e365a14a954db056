import base64
import os

IMAGE_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

FILE_MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
    "csv": "text/csv",
    "json": "application/json",
}

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"
DEFAULT_FILE_MIME_TYPE = "application/octet-stream"


def _extension(path: str) -> str:
    return os.path.splitext(path)[1].lstrip(".").lower()


def detect_image_mime_type(path: str) -> str:
    return IMAGE_MIME_TYPES.get(_extension(path), DEFAULT_IMAGE_MIME_TYPE)


def detect_file_mime_type(path: str) -> str:
    return FILE_MIME_TYPES.get(_extension(path), DEFAULT_FILE_MIME_TYPE)


def _data_uri(path: str, mime_type: str) -> str:
    with open(path, "rb") as f:
        data = base64.b64encode(f.read()).decode("utf-8")
    return f"data:{mime_type};base64,{data}"


def encode_image_as_data_uri(path: str, mime_type: str = None) -> str:
    """Encode an image file as a ``data:`` URI for multimodal messages."""
    return _data_uri(path, mime_type or detect_image_mime_type(path))


def encode_pdf_as_data_uri(path: str) -> str:
    return _data_uri(path, "application/pdf")


def encode_file_as_data_uri(path: str, mime_type: str = None) -> str:
    """Encode any document as a ``data:`` URI for file content parts."""
    return _data_uri(path, mime_type or detect_file_mime_type(path))
