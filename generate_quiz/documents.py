"""Turn a stored upload into prompt text or an inline model part."""

import logging

import fitz

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 100000  # limit to avoid hitting max tokens


def extract_pdf_text(data):
    text = []
    with fitz.open(stream=data, filetype="pdf") as doc:
        for page in doc:
            text.append(page.get_text())
    return "\n".join(text).strip()


def prepare_document(data, content_type):
    """Return ``(text, attachment)``; exactly one of them is set.

    PDFs and plain-text types are sent as text; scanned PDFs without a text
    layer and every other type go to the model as an inline binary part.
    """
    if content_type == "application/pdf":
        try:
            text = extract_pdf_text(data)
        except (RuntimeError, ValueError) as e:
            logger.warning(f"PDF text extraction failed, sending raw file: {e}")
            text = ""
        if text:
            return text[:MAX_PROMPT_CHARS], None
    elif content_type.startswith("text/"):
        text = data.decode("utf-8", errors="ignore").strip()
        if text:
            return text[:MAX_PROMPT_CHARS], None
    return None, {"mime_type": content_type, "data": data}
