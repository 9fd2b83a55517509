"""Tests for pacs.template module."""

from __future__ import annotations

from pacs.template import expand, iter_tokens, missing_keys, placeholders


class TestExpand:
    """Tests for expand function."""

    def test_no_placeholders_is_complete(self) -> None:
        """Test a template without tokens is returned unchanged and complete."""
        assert expand("ls -la", {}) == ("ls -la", True)

    def test_substitutes_known_key(self) -> None:
        """Test a known key is replaced including its delimiters."""
        result, complete = expand('echo "Hello {{name}}"', {"name": "World"})
        assert result == 'echo "Hello World"'
        assert complete is True

    def test_key_is_trimmed(self) -> None:
        """Test whitespace around the key is ignored for lookup."""
        result, complete = expand("ssh {{ host }}", {"host": "example.com"})
        assert result == "ssh example.com"
        assert complete is True

    def test_missing_key_left_untouched(self) -> None:
        """Test unresolved tokens stay byte-for-byte and mark incomplete."""
        template = "scp {{ src }} {{host}}:{{dest}}"
        result, complete = expand(template, {"host": "box"})
        assert result == "scp {{ src }} box:{{dest}}"
        assert complete is False

    def test_repeated_key(self) -> None:
        """Test every occurrence of a key is substituted."""
        result, complete = expand("{{a}}-{{a}}", {"a": "x"})
        assert result == "x-x"
        assert complete is True

    def test_unterminated_open_is_literal(self) -> None:
        """Test an unmatched '{{' is kept as plain text."""
        result, complete = expand("echo {{name", {"name": "World"})
        assert result == "echo {{name"
        assert complete is True

    def test_unterminated_after_valid_token(self) -> None:
        """Test a trailing unmatched '{{' after a resolved token."""
        result, complete = expand("{{a}} and {{b", {"a": "1"})
        assert result == "1 and {{b"
        assert complete is True

    def test_substituted_value_not_rescanned(self) -> None:
        """Test values containing delimiters are inserted verbatim."""
        result, complete = expand("echo {{a}}", {"a": "{{b}}", "b": "nope"})
        assert result == "echo {{b}}"
        assert complete is True

    def test_empty_value(self) -> None:
        """Test an empty value still counts as resolved."""
        assert expand("x{{a}}y", {"a": ""}) == ("xy", True)

    def test_idempotent_on_resolved_output(self) -> None:
        """Test expanding a fully expanded string again changes nothing."""
        values = {"name": "World"}
        once, _ = expand('echo "Hello {{name}}"', values)
        twice, complete = expand(once, values)
        assert twice == once
        assert complete is True

    def test_does_not_mutate_inputs(self) -> None:
        """Test the value map is left untouched."""
        values = {"a": "1"}
        expand("{{a}}{{b}}", values)
        assert values == {"a": "1"}

    def test_multiline_template(self) -> None:
        """Test tokens across several lines."""
        template = "cd {{dir}}\nmake {{target}}\n"
        result, complete = expand(template, {"dir": "/src", "target": "all"})
        assert result == "cd /src\nmake all\n"
        assert complete is True


class TestPlaceholders:
    """Tests for token discovery helpers."""

    def test_placeholders_in_order_without_duplicates(self) -> None:
        """Test keys are returned once in first-seen order."""
        assert placeholders("{{b}} {{a}} {{ b }}") == ["b", "a"]

    def test_iter_tokens_positions(self) -> None:
        """Test token spans cover the whole delimited text."""
        template = "a {{ x }} b"
        tokens = list(iter_tokens(template))
        assert len(tokens) == 1
        start, end, key = tokens[0]
        assert template[start:end] == "{{ x }}"
        assert key == "x"

    def test_missing_keys(self) -> None:
        """Test only keys without values are reported."""
        assert missing_keys("{{a}} {{b}} {{c}}", {"b": "1"}) == ["a", "c"]
