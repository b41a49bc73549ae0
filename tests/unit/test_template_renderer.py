"""
模板渲染单元测试
"""

import pytest

from notification_bridge.notifications.base import TemplateRenderer, first_match
from notification_bridge.notifications.exceptions import TemplateMissing


class TestFirstMatch:
    """测试回退链"""

    def test_returns_first_non_empty(self):
        assert first_match([None, "", "hi_IN", "en_IN"]) == "hi_IN"

    def test_returns_none_when_all_empty(self):
        assert first_match([None, "", None]) is None

    def test_accepts_generator(self):
        assert first_match(x for x in [None, 3]) == 3


class TestTemplateRenderer:
    """测试模板选择与渲染"""

    def test_render_exact_text(self):
        """测试字段齐全时逐字渲染"""
        renderer = TemplateRenderer()

        result = renderer.render("Hello {{name}}, complaint {{id}} received",
                                 {"name": "Asha", "id": "C-100"})

        assert result == "Hello Asha, complaint C-100 received"

    def test_missing_field_renders_empty(self):
        """测试缺失字段渲染为空字符串"""
        renderer = TemplateRenderer()

        result = renderer.render("Hello {{name}}, complaint {{id}} received", {"name": "Asha"})

        assert result == "Hello Asha, complaint  received"

    def test_missing_nested_field_renders_empty(self):
        """测试缺失的嵌套字段不抛异常"""
        renderer = TemplateRenderer()

        result = renderer.render("Ward: {{address.locality.name}}", {})

        assert result == "Ward: "

    def test_none_data(self):
        renderer = TemplateRenderer()
        assert renderer.render("Static text", None) == "Static text"

    def test_no_html_escaping(self):
        """测试纯文本消息不做HTML转义"""
        renderer = TemplateRenderer()

        result = renderer.render("{{text}}", {"text": "<b>Tom & Jerry</b>"})

        assert result == "<b>Tom & Jerry</b>"

    def test_invalid_template_raises_template_missing(self):
        """测试模板语法错误"""
        renderer = TemplateRenderer()

        with pytest.raises(TemplateMissing):
            renderer.render("Hello {{name", {"name": "Asha"})

    def test_select_requested_locale(self):
        renderer = TemplateRenderer()
        templates = {"en_IN": "Hello", "hi_IN": "नमस्ते"}

        assert renderer.select_text(templates, "hi_IN") == "नमस्ते"

    def test_select_falls_back_to_default_locale(self):
        """测试请求语言缺失时回退到默认语言"""
        renderer = TemplateRenderer(fallback_locale="en_IN")
        templates = {"en_IN": "Hello"}

        assert renderer.select_text(templates, "pa_IN") == "Hello"

    def test_select_raises_when_both_missing(self):
        """测试请求语言与默认语言都缺失"""
        renderer = TemplateRenderer(fallback_locale="en_IN")

        with pytest.raises(TemplateMissing):
            renderer.select_text({"hi_IN": "नमस्ते"}, "pa_IN")

    def test_null_field_renders_empty(self):
        """测试值为null的字段渲染为空字符串而不是None"""
        renderer = TemplateRenderer()

        result = renderer.render("Hello {{name}}, complaint {{id}} received", {"name": None, "id": "C-1"})

        assert result == "Hello , complaint C-1 received"

    def test_falsy_values_still_render(self):
        renderer = TemplateRenderer()
        assert renderer.render("{{count}} {{flag}}", {"count": 0, "flag": False}) == "0 False"
