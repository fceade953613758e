"""
Document text extraction for uploads.

Handles DOCX, PDF and plain text. A file that cannot be read yields an empty
string; the analysis pipeline treats that as a failed analysis.
"""

import io
import traceback


TEXT_SUFFIXES = (".txt", ".md", ".csv", ".tsv", ".json", ".xml", ".html", ".htm")


def read_docx_text(file_data: bytes) -> str:
    """Extract text from a DOCX file."""
    try:
        import docx
        doc = docx.Document(io.BytesIO(file_data))
        return "\n".join(p.text for p in doc.paragraphs if p.text.strip())
    except Exception as e:
        print(f"[extraction] DOCX read failed: {e}")
        return ""


def read_pdf_text(file_data: bytes) -> str:
    """Extract text from a PDF file."""
    try:
        import pdfplumber
        text_parts = []
        with pdfplumber.open(io.BytesIO(file_data)) as pdf:
            for page in pdf.pages:
                t = page.extract_text()
                if t:
                    text_parts.append(t)
        return "\n".join(text_parts)
    except Exception as e:
        print(f"[extraction] PDF read failed: {e}")
        return ""


def read_plain_text(file_data: bytes) -> str:
    return file_data.decode("utf-8", errors="replace")


def extract_text(file_data: bytes, filename: str) -> str:
    """Text content of an uploaded document, chosen by file extension."""
    fname_lower = filename.lower()
    print(f"[extraction] Processing '{filename}' ({len(file_data)} bytes)...")

    try:
        if fname_lower.endswith(".docx"):
            text = read_docx_text(file_data)
        elif fname_lower.endswith(".pdf"):
            text = read_pdf_text(file_data)
        elif fname_lower.endswith(TEXT_SUFFIXES) or "." not in fname_lower:
            text = read_plain_text(file_data)
        else:
            # Unknown extension: accept it only if it decodes as UTF-8.
            try:
                text = file_data.decode("utf-8")
            except UnicodeDecodeError:
                print(f"[extraction] Unsupported binary file: {filename}")
                text = ""
    except Exception as e:
        print(f"[extraction] ERROR reading {filename}: {e}")
        traceback.print_exc()
        text = ""

    return text.strip()


def format_size(num_bytes: int) -> str:
    return f"{num_bytes / 1024:.1f} KB"
