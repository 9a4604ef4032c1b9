"""
Document model for the "create document" API call.

Attribute names are snake_case; ``to_dict`` produces the camelCase keys the
API expects and ``from_dict`` reads them back.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def _plain_to_dict(obj) -> Dict[str, Any]:
    return {_camel(f.name): getattr(obj, f.name) for f in fields(obj)}


def _plain_from_dict(cls, data: Mapping[str, Any]):
    kwargs = {}
    for f in fields(cls):
        key = _camel(f.name)
        if key in data:
            kwargs[f.name] = data[key]
    return cls(**kwargs)


@dataclass
class Description:
    participant_inn: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _plain_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Description":
        return _plain_from_dict(cls, data)


@dataclass
class Product:
    certificate_document: Optional[str] = None
    certificate_document_date: Optional[str] = None
    certificate_document_number: Optional[str] = None
    owner_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[str] = None
    tnved_code: Optional[str] = None
    uit_code: Optional[str] = None
    uitu_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _plain_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        return _plain_from_dict(cls, data)


@dataclass
class Document:
    description: Optional[Description] = None
    doc_id: Optional[str] = None
    doc_status: Optional[str] = None
    doc_type: Optional[str] = None
    import_request: Optional[bool] = None
    owner_inn: Optional[str] = None
    participant_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[str] = None
    production_type: Optional[str] = None
    products: Optional[List[Product]] = None
    reg_date: Optional[str] = None
    reg_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = _plain_to_dict(self)
        if self.description is not None:
            data['description'] = self.description.to_dict()
        if self.products is not None:
            data['products'] = [p.to_dict() for p in self.products]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Document":
        doc = _plain_from_dict(cls, data)
        if isinstance(doc.description, Mapping):
            doc.description = Description.from_dict(doc.description)
        if doc.products is not None:
            doc.products = [p if isinstance(p, Product) else Product.from_dict(p) for p in doc.products]
        return doc
