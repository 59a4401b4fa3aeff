"""Pydantic schemas for document submission requests."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocumentFormat(str, Enum):
    """Serialization format of the submitted product document."""

    MANUAL = "MANUAL"
    XML = "XML"
    CSV = "CSV"


class ProductGroup(str, Enum):
    """Product group the document belongs to."""

    clothes = "clothes"
    shoes = "shoes"
    tobacco = "tobacco"
    perfumery = "perfumery"
    tires = "tires"
    electronics = "electronics"
    pharma = "pharma"
    milk = "milk"
    bicycle = "bicycle"
    wheelchairs = "wheelchairs"


class DocumentType(str, Enum):
    """Document type code derived from the document format."""

    LP_INTRODUCE_GOODS = "LP_INTRODUCE_GOODS"
    LP_INTRODUCE_GOODS_CSV = "LP_INTRODUCE_GOODS_CSV"
    LP_INTRODUCE_GOODS_XML = "LP_INTRODUCE_GOODS_XML"


DOCUMENT_TYPE_BY_FORMAT: dict[DocumentFormat, DocumentType] = {
    DocumentFormat.MANUAL: DocumentType.LP_INTRODUCE_GOODS,
    DocumentFormat.XML: DocumentType.LP_INTRODUCE_GOODS_XML,
    DocumentFormat.CSV: DocumentType.LP_INTRODUCE_GOODS_CSV,
}


class ProducedProductDocumentRequest(BaseModel):
    """Request envelope for creating a produced-product document.

    Serialized with camelCase keys (``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    document_format: DocumentFormat = Field(
        ..., alias="documentFormat", description="Format of the encoded document."
    )
    product_document: str = Field(
        ..., alias="productDocument", description="Base64-encoded document body."
    )
    product_group: ProductGroup = Field(
        ..., alias="productGroup", description="Product group of the goods."
    )
    signature: str = Field(
        ..., description="Base64-encoded detached signature."
    )
    type: DocumentType = Field(
        ..., description="Document type matching the document format."
    )
