"""
API endpoints for AyuTrace

This module provides the RESTful endpoints of the request layer. Every write
admits one transaction to the ledger, seals it into a block immediately and
persists the block; reads go to the in-memory ledger, which is authoritative.
Validation failures propagate as ``ValidationError`` and are turned into 400
responses by the server's exception handler.
"""

import logging
import time

from fastapi import APIRouter, HTTPException, Request, status

from ayutrace.api.v1.schemas import (
    CollectionRequest, CollectionResponse,
    QualityTestRequest, QualityTestResponse,
    ProcessingRequest, ProcessingResponse,
    ProductRequest, ProductResponse, QRPayload,
    ProvenanceResponse, ManufacturerSummary,
    StakeholderResponse, ChainHealthResponse, ErrorResponse
)
from ayutrace.core.contracts import generate_qr_code, new_collection_event, new_product
from ayutrace.core.exceptions import StorageError
from ayutrace.core.ledger import Ledger
from ayutrace.core.provenance import BatchHistory, ProvenanceResolver
from ayutrace.core.transactions import QUALITY_TEST, Location, ProcessingStep, Transaction, parse_transaction
from ayutrace.security.secure_logging import sanitize_for_log
from ayutrace.storage.sql_backend import SqlStorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["AyuTrace"])

REJECTION_RESPONSES = {400: {"model": ErrorResponse, "description": "Transaction rejected by a business rule"}}


def _ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def _storage(request: Request) -> SqlStorageBackend:
    return request.app.state.storage


def _record(request: Request, transaction: Transaction) -> str:
    """
    Admit, seal and persist a single transaction.

    Writers hold the application's write lock from admission until the block
    is stored, so blocks reach the store in chain order and a transaction row
    is never written after its block.
    """
    ledger = _ledger(request)
    storage = _storage(request)

    with request.app.state.write_lock:
        transaction_id = ledger.add_transaction(transaction)
        storage.save_transaction(transaction)

        block = ledger.seal_pending_transactions()
        if not storage.save_block(block):
            logger.error(f"Block {block.hash[:10]} sealed but not persisted")
            raise StorageError(f"Block {block.hash[:10]} could not be persisted")
    return transaction_id


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": time.time()}


@router.get("/users", response_model=list[StakeholderResponse])
def list_users(request: Request):
    """List registered stakeholders"""
    return _storage(request).list_stakeholders()


# Sealing is CPU-bound, so write routes are plain functions run in the threadpool
@router.post("/collection", response_model=CollectionResponse, responses=REJECTION_RESPONSES)
def record_collection(payload: CollectionRequest, request: Request):
    """Record a harvest (collection event)"""
    event = new_collection_event(
        policy=_ledger(request).validator.policy,
        collector_id=payload.collector_id,
        species=payload.species,
        quantity=payload.quantity,
        location=Location(latitude=payload.latitude, longitude=payload.longitude, address=payload.address),
        harvest_method=payload.harvest_method,
        organic=payload.organic,
        fair_trade=payload.fair_trade
    )
    _record(request, event)

    return CollectionResponse(
        success=True,
        batch_id=event.id,
        sustainability_score=event.sustainability_score,
        message="Collection event recorded successfully"
    )


@router.post("/quality-test", response_model=QualityTestResponse, responses=REJECTION_RESPONSES)
def record_quality_test(payload: QualityTestRequest, request: Request):
    """Record a laboratory test"""
    test = parse_transaction({
        "type": QUALITY_TEST,
        "batch_id": payload.batch_id,
        "lab_id": payload.lab_id,
        "test_type": payload.test_type,
        "results": payload.results,
        "certificate": payload.certificate,
        "passed": payload.passed
    })
    _record(request, test)

    return QualityTestResponse(success=True, test_id=test.id, message="Quality test recorded successfully")


@router.post("/processing", response_model=ProcessingResponse, responses=REJECTION_RESPONSES)
def record_processing(payload: ProcessingRequest, request: Request):
    """Record a processing step"""
    step = ProcessingStep(
        batch_id=payload.batch_id,
        facility_id=payload.facility_id,
        process_type=payload.process_type,
        temperature=payload.temperature,
        duration=payload.duration,
        output_quantity=payload.output_quantity,
        notes=payload.notes
    )
    _record(request, step)

    return ProcessingResponse(success=True, processing_id=step.id, message="Processing step recorded successfully")


@router.post("/product", response_model=ProductResponse, responses=REJECTION_RESPONSES)
def record_product(payload: ProductRequest, request: Request):
    """Register a finished product and issue its QR code"""
    qr_code = generate_qr_code()
    product = new_product(
        name=payload.name,
        manufacturer_id=payload.manufacturer_id,
        ingredients=payload.ingredients,
        manufacturing_date=payload.manufacturing_date,
        expiry_date=payload.expiry_date,
        qr_code=qr_code
    )
    # The QR mapping is registered first so a sealed product is always scannable
    _ledger(request).validator.check(product)
    if not _storage(request).register_product(product, qr_code):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Product QR code could not be registered; nothing was recorded"
        )
    _record(request, product)

    base_url = request.app.state.settings.PUBLIC_BASE_URL.rstrip("/")
    return ProductResponse(
        success=True,
        product_id=product.id,
        qr_code=qr_code,
        qr_payload=QRPayload(
            product_id=product.id,
            qr_code=qr_code,
            verification_url=f"{base_url}/verify.html?qr={qr_code}"
        ),
        message="Product created successfully"
    )


def _provenance_response(request: Request, product_id: str) -> ProvenanceResponse:
    ledger = _ledger(request)
    report = ProvenanceResolver(ledger).resolve(product_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    manufacturer = _storage(request).get_stakeholder(report.product.manufacturer_id)
    chain_valid = ledger.is_chain_valid()
    return ProvenanceResponse(
        product=report.product,
        manufacturer=ManufacturerSummary(
            name=manufacturer["name"], location=manufacturer["location"]
        ) if manufacturer else None,
        ingredients=report.ingredients,
        verification_status="verified" if chain_valid else "integrity_failure",
        blockchain_valid=chain_valid
    )


@router.get("/provenance/{qr_code}", response_model=ProvenanceResponse)
def get_provenance(qr_code: str, request: Request):
    """Resolve a product's provenance from its scanned QR code"""
    product_id = _storage(request).resolve_qr_code(qr_code)
    if product_id is None:
        logger.info(f"Unknown QR code scanned: {sanitize_for_log(qr_code)}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid QR code")
    return _provenance_response(request, product_id)


@router.get("/products/{product_id}/provenance", response_model=ProvenanceResponse)
def get_product_provenance(product_id: str, request: Request):
    """Resolve a product's provenance from its product id"""
    return _provenance_response(request, product_id)


@router.get("/batch/{batch_id}", response_model=BatchHistory)
def get_batch_history(batch_id: str, request: Request):
    """Time-ordered history of a batch with its chain-of-custody verdict"""
    return ProvenanceResolver(_ledger(request)).batch_history(batch_id)


@router.get("/transactions/{transaction_id}")
def get_transaction(transaction_id: str, request: Request):
    """Look up a sealed transaction"""
    transaction = _ledger(request).find_by_id(transaction_id)
    if transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return transaction.to_payload()


@router.get("/blockchain/health", response_model=ChainHealthResponse)
def get_chain_health(request: Request):
    """Ledger integrity and size"""
    return ChainHealthResponse.model_validate(_ledger(request).get_chain_stats())
