"""Unit tests for PDF loading."""

from fakes import make_pdf

from pdfchat.ingestion.loader import load_pdf, load_pdf_bytes


def test_load_pdf_bytes_returns_one_document_per_page() -> None:
    data = make_pdf(["First page about revenue.", "Second page about costs."])
    pages = load_pdf_bytes(data, source="report.pdf")
    assert len(pages) == 2
    assert "revenue" in pages[0].page_content
    assert "costs" in pages[1].page_content


def test_load_pdf_bytes_overrides_source() -> None:
    pages = load_pdf_bytes(make_pdf(["Hello"]), source="report.pdf")
    assert pages[0].metadata["source"] == "report.pdf"
    assert pages[0].metadata["page"] == 0


def test_load_pdf_from_path(tmp_path) -> None:
    path = tmp_path / "doc.pdf"
    path.write_bytes(make_pdf(["On disk"]))
    pages = load_pdf(path)
    assert len(pages) == 1
    assert "On disk" in pages[0].page_content
