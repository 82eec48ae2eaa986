"""
Field descriptors and field mappers
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

import pytest
from elasticsearch_dsl import Mapping

from searchsync.core.enums import EmbeddedMode
from searchsync.exceptions import MappingError
from searchsync.mapping import (
    CollectionFieldMapper,
    DefaultMapperFactory,
    SimpleFieldMapper,
    SubField,
    describe,
    embedded,
    multi_field,
    search_field,
)
from searchsync.mapping.descriptor import is_annotated
from searchsync.mapping.types import detect_field_type, from_document_value, to_document_value

from tests.models import Address, Article, Color, GeoPoint


@dataclass
class Sample:
    name: str = field(default="", metadata=search_field())
    title: str = field(
        default="",
        metadata=multi_field(SubField(type="text"), SubField("raw", "keyword")),
    )
    count: int = field(default=0, metadata=search_field(type="integer", coerce=False))
    scores: List[float] = field(default_factory=list, metadata=search_field())
    pair: Tuple[int, str] = field(default=(0, ""), metadata=search_field())
    bare_multi: str = field(default="", metadata=multi_field())
    untyped_multi: str = field(
        default="", metadata=multi_field(SubField(type="text"), SubField("raw"))
    )
    twice: str = field(
        default="",
        metadata=multi_field(SubField("x", "text"), SubField("x", "keyword")),
    )
    both: str = field(
        default="",
        metadata={**search_field(), **multi_field(SubField(type="text"))},
    )
    weird: str = field(default="", metadata=search_field(type="not_a_type"))
    blob: bytes = field(default=b"", metadata=search_field())
    misplaced: str = field(default="", metadata=embedded())
    skipped: str = ""


def _field(name: str) -> dataclasses.Field:
    return {f.name: f for f in dataclasses.fields(Sample)}[name]


def _mapper(name: str, value_type=None):
    f = _field(name)
    return DefaultMapperFactory().get_field_mapper(f, value_type or f.type)


# =============================================================================
# describe()
# =============================================================================


def test_describe_single_field():
    descriptor = describe(_field("name"), str)

    assert descriptor.index_field == "name"
    assert not descriptor.is_multi_field
    assert not descriptor.has_type
    assert descriptor.keys() == ("name",)


def test_describe_prefix_applies_to_index_field():
    descriptor = describe(_field("name"), str, prefix="owner.")

    assert descriptor.index_field == "owner.name"
    assert descriptor.prefix == "owner."


def test_describe_multi_field_keys():
    descriptor = describe(_field("title"), str)

    assert descriptor.is_multi_field
    assert descriptor.primary.type == "text"
    assert descriptor.keys() == ("title", "title_raw")


def test_describe_rejects_single_and_multi_on_same_field():
    with pytest.raises(MappingError, match="both"):
        describe(_field("both"), str)


def test_describe_rejects_empty_multi_field():
    with pytest.raises(MappingError, match="without sub-fields"):
        describe(_field("bare_multi"), str)


def test_describe_requires_sub_field_types():
    with pytest.raises(MappingError, match="requires an explicit type"):
        describe(_field("untyped_multi"), str)


def test_describe_rejects_duplicate_sub_field_names():
    with pytest.raises(MappingError, match="twice"):
        describe(_field("twice"), str)


def test_unannotated_field_is_not_described():
    assert not is_annotated(_field("skipped"))
    assert is_annotated(_field("misplaced"))


# =============================================================================
# Field mappers
# =============================================================================


def test_simple_field_writes_document_and_schema():
    mapper = _mapper("name")
    document = {}
    mapper.write_to_document(Sample(name="Alice"), document)
    mapping = Mapping()
    mapper.write_to_schema(mapping)

    assert isinstance(mapper, SimpleFieldMapper)
    assert document == {"name": "Alice"}
    assert mapping.to_dict()["properties"] == {"name": {"type": "text"}}


def test_none_value_writes_nothing():
    document = {}
    _mapper("name").write_to_document(Sample(name=None), document)

    assert document == {}


def test_explicit_type_and_settings_used_verbatim():
    mapping = Mapping()
    _mapper("count").write_to_schema(mapping)

    assert mapping.to_dict()["properties"]["count"] == {"type": "integer", "coerce": False}


def test_multi_field_writes_one_key_per_sub_field():
    mapper = _mapper("title")
    document = {}
    mapper.write_to_document(Sample(title="Search Engines"), document)
    mapping = Mapping()
    mapper.write_to_schema(mapping)

    assert document == {"title": "Search Engines", "title_raw": "Search Engines"}
    assert mapping.to_dict()["properties"] == {
        "title": {"type": "text"},
        "title_raw": {"type": "keyword"},
    }


def test_multi_field_reads_primary_sub_field():
    value, present = _mapper("title").read_from_document(
        {"title": "primary", "title_raw": "secondary"}
    )

    assert present
    assert value == "primary"


def test_missing_value_is_not_present():
    value, present = _mapper("name").read_from_document({"other": 1})

    assert (value, present) == (None, False)


def test_inflate_applies_only_present_values():
    sample = Sample(name="keep")
    mapper = _mapper("name")

    assert mapper.inflate(sample, {}) is False
    assert sample.name == "keep"
    assert mapper.inflate(sample, {"name": "new"}) is True
    assert sample.name == "new"


def test_collection_field_maps_element_type():
    mapper = _mapper("scores")
    mapping = Mapping()
    mapper.write_to_schema(mapping)
    document = {}
    mapper.write_to_document(Sample(scores=[1.5, 2.0]), document)

    assert isinstance(mapper, CollectionFieldMapper)
    assert mapping.to_dict()["properties"]["scores"] == {"type": "double"}
    assert document == {"scores": [1.5, 2.0]}
    assert mapper.read_from_document({"scores": [3, 4.5]}) == ([3.0, 4.5], True)


def test_heterogeneous_tuple_is_unsupported():
    with pytest.raises(MappingError, match="pair"):
        _mapper("pair")


def test_unsupported_python_type_names_field_and_type():
    with pytest.raises(MappingError, match="blob.*bytes"):
        _mapper("blob")


def test_unknown_explicit_schema_type_fails():
    with pytest.raises(MappingError, match="not_a_type"):
        _mapper("weird")


def test_embedded_marker_on_scalar_fails():
    with pytest.raises(MappingError, match="not a dataclass"):
        _mapper("misplaced")


def test_nested_embedded_field():
    f = {f.name: f for f in dataclasses.fields(Article)}["address"]
    mapper = DefaultMapperFactory().get_field_mapper(f, Optional[Address])
    mapping = Mapping()
    mapper.write_to_schema(mapping)
    document = {}
    mapper.write_to_document(Article(address=Address("Main St", "Berlin")), document)

    nested = mapping.to_dict()["properties"]["address"]
    assert mapper.mode == EmbeddedMode.NESTED
    assert nested["type"] == "nested"
    assert nested["properties"] == {"street": {"type": "text"}, "city": {"type": "keyword"}}
    assert document == {"address": {"street": "Main St", "city": "Berlin"}}
    assert mapper.read_from_document(document) == (Address("Main St", "Berlin"), True)


# =============================================================================
# Type detection and value conversion
# =============================================================================


@pytest.mark.parametrize(
    "py_type, es_type",
    [
        (str, "text"),
        (int, "long"),
        (float, "double"),
        (bool, "boolean"),
        (datetime, "date"),
        (date, "date"),
        (Color, "keyword"),
        (GeoPoint, "geo_point"),
        (Optional[int], "long"),
        (bytes, None),
    ],
)
def test_detect_field_type(py_type, es_type):
    assert detect_field_type(py_type) == es_type


def test_document_values_are_json_ready():
    moment = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    assert to_document_value(moment) == "2024-05-01T12:30:00+00:00"
    assert to_document_value(date(2024, 5, 1)) == "2024-05-01"
    assert to_document_value(Color.BLUE) == "blue"
    assert to_document_value(GeoPoint(1.5, 2.5)) == {"lat": 1.5, "lon": 2.5}
    assert to_document_value({"a": (1, 2)}) == {"a": [1, 2]}


def test_document_values_convert_back():
    assert from_document_value("2024-05-01T12:30:00Z", datetime) == datetime(
        2024, 5, 1, 12, 30, tzinfo=timezone.utc
    )
    assert from_document_value("2024-05-01", date) == date(2024, 5, 1)
    assert from_document_value("blue", Color) is Color.BLUE
    assert from_document_value("false", bool) is False
    assert from_document_value("7", int) == 7
    assert from_document_value([13.4, 52.5], GeoPoint) == GeoPoint(52.5, 13.4)
    assert from_document_value("52.5,13.4", GeoPoint) == GeoPoint(52.5, 13.4)
    assert from_document_value(None, int) is None
