"""
Tests for raw reply email parsing
"""
from gironaneta.replies.email_parser import (
    decode_base64,
    decode_quoted_printable,
    extract_plain_text,
    extract_report_id,
    reply_address,
    strip_html,
)

REPORT_ID = "3f2b8c1e-9a4d-4e7b-b1c2-0d9e8f7a6b5c"


class TestReplyAddress:
    """Test suite for plus-addressed reply routing."""

    def test_reply_address(self):
        assert reply_address(REPORT_ID) == f"info+{REPORT_ID}@gironaneta.cat"

    def test_extract_report_id(self):
        assert extract_report_id(f"info+{REPORT_ID}@gironaneta.cat") == REPORT_ID

    def test_extract_is_case_insensitive(self):
        assert extract_report_id(f"INFO+{REPORT_ID.upper()}@GironaNeta.CAT") == REPORT_ID

    def test_round_trip(self):
        assert extract_report_id(reply_address(REPORT_ID)) == REPORT_ID

    def test_unrelated_addresses(self):
        assert extract_report_id("info@gironaneta.cat") is None
        assert extract_report_id(f"info+{REPORT_ID}@example.com") is None
        assert extract_report_id("info+not_hex!@gironaneta.cat") is None
        assert extract_report_id("") is None


class TestTransferDecoding:

    def test_quoted_printable(self):
        assert decode_quoted_printable("caf=C3=A9").decode("utf-8") == "café"

    def test_quoted_printable_soft_break(self):
        assert decode_quoted_printable("retir=\r\nat").decode("utf-8") == "retirat"
        assert decode_quoted_printable("retir=\nat").decode("utf-8") == "retirat"

    def test_base64_with_whitespace(self):
        assert decode_base64("SG9s\r\nYQ==\n") == b"Hola"

    def test_base64_invalid(self):
        assert decode_base64("not*base64") is None


class TestStripHtml:

    def test_paragraphs_and_breaks(self):
        html = "<p>Bon dia,</p><p>Retirat<br>avui</p>"
        assert strip_html(html) == "Bon dia,\n\nRetirat\navui"

    def test_entities(self):
        assert strip_html("A &amp; B &lt;3&gt; &quot;ok&quot;&nbsp;!") == 'A & B <3> "ok" !'

    def test_double_escaped_entity(self):
        """Test &amp;lt; decodes once."""
        assert strip_html("&amp;lt;") == "&lt;"

    def test_collapses_blank_lines(self):
        assert strip_html("a</p></p></p>b") == "a\n\nb"


class TestExtractPlainText:
    """Test suite for extract_plain_text."""

    def test_quoted_printable_body(self):
        raw = (
            "From: avisos@fcc.es\r\n"
            f"To: info+{REPORT_ID}@gironaneta.cat\r\n"
            "Content-Type: text/plain; charset=utf-8\r\n"
            "Content-Transfer-Encoding: quoted-printable\r\n"
            "\r\n"
            "Incid=C3=A8ncia resolta. Caf=C3=A9 =\r\n"
            "net.\r\n"
        )
        assert extract_plain_text(raw) == "Incidència resolta. Café net."

    def test_base64_body(self):
        raw = (
            "From: avisos@fcc.es\n"
            "Content-Type: text/plain; charset=utf-8\n"
            "Content-Transfer-Encoding: base64\n"
            "\n"
            "SW5jaWTDqG5jaWEgcmVz\n"
            "b2x0YS4gR3LDoGNpZXMu\n"
        )
        assert extract_plain_text(raw) == "Incidència resolta. Gràcies."

    def test_latin1_charset(self):
        raw = (
            "Content-Type: text/plain; charset=iso-8859-1\n"
            "Content-Transfer-Encoding: quoted-printable\n"
            "\n"
            "Gr=E0cies\n"
        )
        assert extract_plain_text(raw) == "Gràcies"

    def test_plain_body(self):
        raw = "Subject: Re: avis\n\nRetirat aquest matí.\n"
        assert extract_plain_text(raw) == "Retirat aquest matí."

    def test_multipart_prefers_plain(self):
        raw = (
            "Content-Type: multipart/alternative; boundary=\"b1\"\n"
            "\n"
            "--b1\n"
            "Content-Type: text/html; charset=utf-8\n"
            "\n"
            "<p>HTML version</p>\n"
            "--b1\n"
            "Content-Type: text/plain; charset=utf-8\n"
            "Content-Transfer-Encoding: quoted-printable\n"
            "\n"
            "Versi=C3=B3 text\n"
            "--b1--\n"
        )
        assert extract_plain_text(raw) == "Versió text"

    def test_multipart_html_fallback(self):
        raw = (
            "Content-Type: multipart/alternative; boundary=\"b1\"\n"
            "\n"
            "--b1\n"
            "Content-Type: text/html; charset=utf-8\n"
            "\n"
            "<p>Hola</p><p>Retirat &amp; net</p>\n"
            "--b1--\n"
        )
        assert extract_plain_text(raw) == "Hola\n\nRetirat & net"

    def test_no_header_separator(self):
        """Test a message without a blank line returns the raw text."""
        raw = "Just a line without any headers"
        assert extract_plain_text(raw) == raw

    def test_no_header_separator_is_truncated(self):
        raw = "x" * 3000
        assert extract_plain_text(raw) == "x" * 2000
