"""
Tests for wire models and element defaults.
"""
import pytest
from pydantic import ValidationError

from collab.schemas import (
    ELEMENT_TYPES,
    ElementList,
    ImageElement,
    JoinPresentation,
    RectangleElement,
    UpdateSlide,
    dump,
    is_provisional_id,
    new_element,
)


def test_discriminator_selects_variant():
    elements = ElementList.validate_python([
        {"id": "r1", "type": "rectangle", "position": {"x": 1, "y": 2}},
        {"id": "t1", "type": "text", "position": {"x": 1, "y": 2}, "content": "hello"},
    ])
    assert isinstance(elements[0], RectangleElement)
    assert elements[1].content == "hello"


def test_unknown_element_type_rejected():
    with pytest.raises(ValidationError):
        ElementList.validate_python([{"type": "hexagon", "position": {"x": 0, "y": 0}}])


def test_legacy_underscore_id_accepted():
    element = ElementList.validate_python([{"_id": "abc", "type": "circle", "position": {"x": 0, "y": 0}}])[0]
    assert element.id == "abc"
    assert dump(element)["id"] == "abc"


def test_image_requires_content():
    with pytest.raises(ValidationError):
        ImageElement(id="i1", content="", position={"x": 0, "y": 0})


def test_dump_uses_camel_case_and_drops_none():
    element = RectangleElement(id="r1", provisional_id="tmp_1", position={"x": 0, "y": 0})
    data = dump(element)
    assert data["provisionalId"] == "tmp_1"
    assert "size" not in data and "style" not in data


@pytest.mark.parametrize("kind", ELEMENT_TYPES)
def test_new_element_defaults(kind):
    element = new_element(kind, "tmp_x")
    assert element.type == kind
    assert element.id == "tmp_x"
    assert element.size is not None
    assert element.style


def test_new_element_overrides():
    element = new_element("text", "tmp_x", content="Title", position={"x": 5, "y": 6})
    assert element.content == "Title"
    assert element.position.x == 5
    assert element.style["fontSize"] == "16px"


def test_new_element_unknown_kind():
    with pytest.raises(ValueError):
        new_element("star", "tmp_x")


def test_is_provisional_id():
    assert is_provisional_id(None)
    assert is_provisional_id("tmp_123")
    assert not is_provisional_id("4f1c")


class TestPayloads:
    """Inbound event payload validation"""

    def test_join_strips_whitespace(self):
        payload = JoinPresentation.model_validate({"presentationId": " p1 ", "userId": "u1", "nickname": " Bob "})
        assert payload.presentation_id == "p1"
        assert payload.nickname == "Bob"

    def test_join_rejects_blank_nickname(self):
        with pytest.raises(ValidationError):
            JoinPresentation.model_validate({"presentationId": "p1", "userId": "u1", "nickname": "   "})

    def test_update_slide_rejects_negative_index(self):
        with pytest.raises(ValidationError):
            UpdateSlide.model_validate({"presentationId": "p1", "slideIndex": -1, "elements": []})
