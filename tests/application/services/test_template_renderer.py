# tests/application/services/test_template_renderer.py
import pytest

from application.services.template_renderer import (
    MissingVariableError,
    TemplateRenderError,
    TemplateRenderer,
    merge_contexts,
)


class TestRenderStr:
    def test_render_simple_var(self):
        renderer = TemplateRenderer()
        assert renderer.render_str("Hello {{name}}", {"name": "Alice"}) == "Hello Alice"

    def test_whitespace_dots_and_hyphens_in_identifier(self):
        renderer = TemplateRenderer()
        ctx = {"user.id": "7", "api-key": "k"}
        assert renderer.render_str("{{ user.id }}/{{api-key}}", ctx) == "7/k"

    def test_render_multiple_templates(self):
        renderer = TemplateRenderer()
        result = renderer.render_str("{{first}} {{last}}", {"first": "John", "last": "Doe"})
        assert result == "John Doe"

    @pytest.mark.parametrize("text", ["Plain text", "", "{ {x} }", "{{ }}", "{{bad key}}"])
    def test_text_without_placeholders_is_unchanged(self, text):
        assert TemplateRenderer().render_str(text, {"x": "1"}) == text

    def test_every_key_present_leaves_no_braces(self):
        ctx = {"a": "1", "b": "2", "c": "3"}
        out = TemplateRenderer().render_str("{{a}}-{{ b }}-{{c}}-{{a}}", ctx)
        assert out == "1-2-3-1"
        assert "{{" not in out

    def test_missing_variables_are_collected(self):
        renderer = TemplateRenderer()
        with pytest.raises(MissingVariableError) as excinfo:
            renderer.render_str("{{a}} {{missing}} {{b}} {{other}}", {"a": "1", "b": "2"})

        err = excinfo.value
        assert str(err) == "missing variable: missing,other"
        assert err.missing == ["missing", "other"]
        # partial substitution stays observable
        assert err.partial == "1 {{missing}} 2 {{other}}"
        assert isinstance(err, TemplateRenderError)

    def test_partial_never_raises(self):
        renderer = TemplateRenderer()
        assert renderer.render_str_partial("{{a}}/{{nope}}", {"a": "x"}) == "x/{{nope}}"


class TestRenderValue:
    def test_nested_structure(self):
        renderer = TemplateRenderer()
        data = {
            "user": {
                "name": "{{name}}",
                "age": 30,
                "hobbies": ["{{hobby}}", "reading"],
                "active": True,
                "nickname": None,
            }
        }

        out = renderer.render_value(data, {"name": "alice", "hobby": "coding"})

        assert out == {
            "user": {
                "name": "alice",
                "age": 30,
                "hobbies": ["coding", "reading"],
                "active": True,
                "nickname": None,
            }
        }
        assert data["user"]["name"] == "{{name}}"

    def test_short_circuits_on_first_missing_variable(self):
        # the tree is not rendered past the first failing leaf, and the error
        # names only that leaf's variable (unlike render_str, which collects)
        renderer = TemplateRenderer()
        data = {"first": "{{one}}", "second": "{{two}}", "third": "{{ok}}"}

        with pytest.raises(MissingVariableError) as excinfo:
            renderer.render_value(data, {"ok": "fine"})

        assert excinfo.value.missing == ["one"]

    def test_partial_tree_keeps_missing_placeholders(self):
        renderer = TemplateRenderer()
        data = {"username": "alice", "phone": "{{phone}}", "password": "{{missing}}"}

        out = renderer.render_value_partial(data, {"phone": "123"})

        assert out == {"username": "alice", "phone": "123", "password": "{{missing}}"}


def test_merge_contexts_is_exported():
    assert merge_contexts({"a": "1"}, {"a": "2"}) == {"a": "2"}
