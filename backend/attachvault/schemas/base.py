"""Schema bases: snake_case attributes in Python, camelCase keys on the wire."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request bodies. Either ``trashDocIds`` or ``trash_doc_ids`` is accepted."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class CamelORMModel(CamelModel):
    """Responses read straight off ORM rows, including properties like ``doc_ids``."""
    model_config = ConfigDict(from_attributes=True)
