import re
from datetime import datetime
from typing import Any, Dict, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from basespace.domain.exceptions import DecodingError
from basespace.domain.models import BasespaceFile, Biosample, Dataset, Project, Sample

Entity = TypeVar("Entity", bound=BaseModel)

# Domain field name -> path of keys in the BaseSpace JSON payload
WIRE_PATHS: Dict[Type[BaseModel], Dict[str, Tuple[str, ...]]] = {
    Project: {
        "id": ("Id",),
        "name": ("Name",),
        "description": ("Description",),
        "date_created": ("DateCreated",),
        "importable_datasets": ("ImportableDatasets",),
    },
    Sample: {
        "id": ("Id",),
        "name": ("Name",),
        "url": ("Href",),
    },
    Biosample: {
        "id": ("Id",),
        "url": ("Href",),
        "name": ("BioSampleName",),
        "project_id": ("DefaultProject", "Id"),
    },
    Dataset: {
        "id": ("Id",),
        "name": ("Name",),
        "date_created": ("DateCreated",),
        "project_name": ("Project", "Name"),
        "dataset_type": ("DatasetType", "Id"),
        "size": ("TotalSize",),
    },
    BasespaceFile: {
        "id": ("Id",),
        "name": ("Name",),
        "url": ("HrefContent",),
        "date_created": ("DateCreated",),
        "size": ("Size",),
        "dataset_name": ("DatasetName",),
    },
}

TIMESTAMP_FIELDS = {"date_created"}

# BaseSpace writes seven fractional digits, datetime holds six
_EXTRA_FRACTION_DIGITS = re.compile(r"(\.\d{6})\d+")


def wire_path(path: Sequence[str]) -> str:
    return "/".join(path)


def extract(payload: Any, path: Sequence[str]) -> Any:
    """
    Walks ``path`` through nested JSON objects and returns the value found.

    Raises:
        DecodingError: naming the first segment that is missing or whose
            parent is not a JSON object.
    """
    node = payload
    for depth, key in enumerate(path):
        if not isinstance(node, dict):
            raise DecodingError(wire_path(path[:depth]), "expected an object")
        if key not in node:
            raise DecodingError(wire_path(path[:depth + 1]), "missing field")
        node = node[key]
    return node


def _normalise_timestamp(raw: str) -> str:
    return _EXTRA_FRACTION_DIGITS.sub(r"\1", raw)


def _format_timestamp(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


class BaseSpaceTranslator:
    """
    Anti-corruption layer that translates raw BaseSpace JSON objects into domain entities and back.
    """

    @staticmethod
    def decode(model: Type[Entity], raw_node: Any) -> Entity:
        """
        Builds a ``model`` instance from a raw BaseSpace JSON object.

        Every declared field must be present and convertible; optional fields
        map absent or null values to None.

        Args:
            model (Type[Entity]): The domain model to build.
            raw_node (Any): The decoded JSON object.

        Returns:
            Entity: The validated domain entity.

        Raises:
            DecodingError: identifying the offending wire path and the reason.
        """
        if not isinstance(raw_node, dict):
            raise DecodingError("", "expected an object")

        paths = WIRE_PATHS[model]
        values: Dict[str, Any] = {}
        for field_name, path in paths.items():
            required = model.model_fields[field_name].is_required()
            try:
                value = extract(raw_node, path)
            except DecodingError:
                if required:
                    raise
                value = None

            if value is None and required:
                raise DecodingError(wire_path(path), "null value")
            if field_name in TIMESTAMP_FIELDS and isinstance(value, str):
                value = _normalise_timestamp(value)
            values[field_name] = value

        try:
            return model.model_validate(values)
        except ValidationError as e:
            error = e.errors()[0]
            field_name = error["loc"][0]
            raise DecodingError(wire_path(paths[field_name]), error["msg"]) from e

    @staticmethod
    def to_project(raw_node: Any) -> Project:
        return BaseSpaceTranslator.decode(Project, raw_node)

    @staticmethod
    def to_sample(raw_node: Any) -> Sample:
        return BaseSpaceTranslator.decode(Sample, raw_node)

    @staticmethod
    def to_biosample(raw_node: Any) -> Biosample:
        return BaseSpaceTranslator.decode(Biosample, raw_node)

    @staticmethod
    def to_dataset(raw_node: Any) -> Dataset:
        return BaseSpaceTranslator.decode(Dataset, raw_node)

    @staticmethod
    def to_file(raw_node: Any) -> BasespaceFile:
        return BaseSpaceTranslator.decode(BasespaceFile, raw_node)

    @staticmethod
    def to_wire(entity: BaseModel) -> Dict[str, Any]:
        """
        Transforms a domain entity back into its BaseSpace JSON shape.
        Fields holding None are left out.
        """
        wire: Dict[str, Any] = {}
        for field_name, path in WIRE_PATHS[type(entity)].items():
            value = getattr(entity, field_name)
            if value is None:
                continue
            if isinstance(value, datetime):
                value = _format_timestamp(value)
            node = wire
            for key in path[:-1]:
                node = node.setdefault(key, {})
            node[path[-1]] = value
        return wire
