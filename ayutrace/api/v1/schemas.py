"""
Pydantic schemas for API v1 requests and responses

This module defines the data models used for validating and serializing the
AyuTrace request layer. Request fields are deliberately optional: completeness
is a business rule, and a missing field is reported by the contracts validator
with the rule that failed rather than by a generic schema error.
"""

from typing import Any
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

from ayutrace.core.provenance import IngredientTrace
from ayutrace.core.transactions import Product


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CollectionRequest(ApiModel):
    """Request schema for recording a harvest"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "collectorId": "FARMER001",
                "species": "Withania somnifera",
                "quantity": 30,
                "latitude": 30.3165,
                "longitude": 78.0322,
                "address": "Dehradun, Uttarakhand",
                "harvestMethod": "hand-picked",
                "organic": True,
                "fairTrade": False
            }
        }
    )

    collector_id: str | None = Field(None, description="Stakeholder id of the collector")
    species: str | None = Field(None, description="Botanical species harvested")
    quantity: float | None = Field(None, description="Harvested quantity in kg")
    latitude: float | None = Field(None, description="Harvest latitude")
    longitude: float | None = Field(None, description="Harvest longitude")
    address: str | None = Field(None, description="Human-readable harvest location")
    harvest_method: str | None = Field(None, description="Harvesting method")
    organic: bool = Field(False, description="Certified organic")
    fair_trade: bool = Field(False, description="Certified fair trade")


class CollectionResponse(ApiModel):
    """Response schema for a recorded harvest"""
    success: bool = Field(..., description="Whether the operation was successful")
    batch_id: str = Field(..., description="Batch identifier (the collection event id)")
    sustainability_score: int = Field(..., description="Sustainability score (0-100)")
    message: str = Field(..., description="Response message")


class QualityTestRequest(ApiModel):
    """Request schema for recording a laboratory test"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "batchId": "BATCH-FARMER001-1717987200000-k3j9xq",
                "labId": "LAB001",
                "testType": "moisture",
                "results": {"value": 8.5, "unit": "%"},
                "certificate": "CERT-2024-0113",
                "passed": True
            }
        }
    )

    batch_id: str | None = Field(None, description="Batch under test")
    lab_id: str | None = Field(None, description="Stakeholder id of the laboratory")
    test_type: str | None = Field(None, description="Test type (moisture, pesticide, ...)")
    results: dict[str, Any] | None = Field(None, description="Measured results; 'value' is checked against thresholds")
    certificate: str | None = Field(None, description="Certificate reference")
    passed: bool | None = Field(None, description="Laboratory verdict")


class QualityTestResponse(ApiModel):
    """Response schema for a recorded test"""
    success: bool = Field(..., description="Whether the operation was successful")
    test_id: str = Field(..., description="Transaction id of the test")
    message: str = Field(..., description="Response message")


class ProcessingRequest(ApiModel):
    """Request schema for recording a processing step"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "batchId": "BATCH-FARMER001-1717987200000-k3j9xq",
                "facilityId": "PROC001",
                "processType": "drying",
                "temperature": 45,
                "duration": 12,
                "outputQuantity": 27.5,
                "notes": "Shade dried"
            }
        }
    )

    batch_id: str | None = Field(None, description="Batch being processed")
    facility_id: str | None = Field(None, description="Stakeholder id of the facility")
    process_type: str | None = Field(None, description="Process type (drying, grinding, ...)")
    temperature: float | None = Field(None, description="Process temperature in degrees Celsius")
    duration: float | None = Field(None, description="Duration in hours")
    output_quantity: float | None = Field(None, description="Output quantity in kg")
    notes: str | None = Field(None, description="Free-form notes")


class ProcessingResponse(ApiModel):
    """Response schema for a recorded processing step"""
    success: bool = Field(..., description="Whether the operation was successful")
    processing_id: str = Field(..., description="Transaction id of the step")
    message: str = Field(..., description="Response message")


class ProductRequest(ApiModel):
    """Request schema for registering a finished product"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Ashwagandha Churna",
                "manufacturerId": "MFG001",
                "ingredients": [
                    {"name": "Ashwagandha root", "sourceBatchId": "BATCH-FARMER001-1717987200000-k3j9xq",
                     "percentage": 100}
                ],
                "manufacturingDate": "2024-06-10",
                "expiryDate": "2026-06-10"
            }
        }
    )

    name: str | None = Field(None, description="Product name")
    manufacturer_id: str | None = Field(None, description="Stakeholder id of the manufacturer")
    ingredients: list[dict[str, Any]] | None = Field(None, description="Ingredients with their source batches")
    manufacturing_date: str | None = Field(None, description="Manufacturing date")
    expiry_date: str | None = Field(None, description="Expiry date")


class QRPayload(ApiModel):
    """Content to encode in the product's QR image"""
    product_id: str
    qr_code: str
    verification_url: str


class ProductResponse(ApiModel):
    """Response schema for a registered product"""
    success: bool = Field(..., description="Whether the operation was successful")
    product_id: str = Field(..., description="Product identifier")
    qr_code: str = Field(..., description="Issued QR code")
    qr_payload: QRPayload = Field(..., description="Payload for the QR image")
    message: str = Field(..., description="Response message")


class StakeholderResponse(ApiModel):
    """Supply-chain participant"""
    id: str
    name: str
    type: str
    email: str | None = None
    phone: str | None = None
    location: dict[str, Any] = Field(default_factory=dict)
    created_at: float | None = None


class ManufacturerSummary(ApiModel):
    name: str
    location: dict[str, Any] = Field(default_factory=dict)


class ProvenanceResponse(ApiModel):
    """Response schema for a product's provenance"""
    product: Product = Field(..., description="Product transaction")
    manufacturer: ManufacturerSummary | None = Field(None, description="Registered manufacturer")
    ingredients: list[IngredientTrace] = Field(..., description="Ingredient histories, oldest first")
    verification_status: str = Field(..., description="'verified' when the chain is intact")
    blockchain_valid: bool = Field(..., description="Chain integrity at the time of the query")


class LatestBlock(ApiModel):
    hash: str
    timestamp: float


class ChainHealthResponse(ApiModel):
    """Response schema for ledger health"""
    is_valid: bool = Field(..., description="Whether the chain passed verification")
    chain_length: int = Field(..., description="Number of blocks including genesis")
    pending_transactions: int = Field(..., description="Transactions waiting to be sealed")
    total_transactions: int = Field(..., description="Sealed transactions")
    difficulty: int = Field(..., description="Sealing difficulty")
    latest_block: LatestBlock = Field(..., description="Most recent block")
    violations: list[str] = Field(default_factory=list, description="Integrity violations found")


class ErrorResponse(ApiModel):
    """Error body returned for rejected submissions"""
    error: str
    rule: str | None = None
    field: str | None = None
