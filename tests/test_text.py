from docchat.ingest.text import detect_language, html_to_text, normalize_text


def test_normalize_text_folds_whitespace_and_newlines():
    raw = "Cafe\u0301  menu\t\tprices\u00a0here \r\n\r\n\r\n\r\nNext   line  \n  end\u200b"

    assert normalize_text(raw) == "Caf\u00e9 menu prices here\n\nNext line\nend"


def test_normalize_text_strips_outer_whitespace():
    assert normalize_text("   \n\n hello \n ") == "hello"


def test_html_to_text_skips_scripts_and_keeps_blocks():
    html = """
    <html>
      <head><title>Sample Page</title><style>body { color: red; }</style></head>
      <body>
        <script>var hidden = "do not index";</script>
        <h1>Heading</h1>
        <p>First paragraph.</p>
        <ul><li>One</li><li>Two</li></ul>
      </body>
    </html>
    """

    title, text = html_to_text(html)

    assert title == "Sample Page"
    assert "do not index" not in text
    assert "color: red" not in text
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    assert lines == ["Heading", "First paragraph.", "One", "Two"]


def test_html_to_text_keeps_body_when_head_is_not_closed():
    html = "<html><head><title>Shop</title><body><p>Opening hours are nine to five.</p></body></html>"

    title, text = html_to_text(html)

    assert title == "Shop"
    assert text == "Opening hours are nine to five."


def test_html_to_text_ignores_svg_titles():
    html = (
        "<html><head><title>Shop</title></head><body>"
        "<svg><title>Cart icon</title><path d='M0 0'/></svg>"
        "<p>Free delivery on weekends.</p></body></html>"
    )

    title, text = html_to_text(html)

    assert title == "Shop"
    assert "Cart icon" not in text
    assert text == "Free delivery on weekends."


def test_detect_language_for_english_text():
    text = "The quick brown fox jumps over the lazy dog while the farmer watches from the field."

    assert detect_language(text) == "en"


def test_detect_language_returns_none_for_blank_text():
    assert detect_language("   ") is None
