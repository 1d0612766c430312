import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from order_pricing.audit.report import build_pricing_report
from order_pricing.engine.errors import (
    CatalogItemNotFound,
    InvalidQuantity,
    NotAutoFixable,
    OrderConflict,
    OrderNotFound,
)
from order_pricing.engine.models import (
    Address,
    ItemKind,
    ItemStatus,
    Order,
    OrderLineItem,
    ResolvedPrice,
    ValidationReport,
)
from order_pricing.services.pricing_service import PricingService
from order_pricing.api.state import get_service

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Order Pricing API",
    description="Order price reconciliation and delivery charge quotes",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class LineItemIn(BaseModel):
    item_id: str
    kind: ItemKind = ItemKind.PRODUCT
    catalog_id: str
    quantity: int
    unit_price: Decimal = Decimal("0")
    item_total: Decimal = Decimal("0")
    size: Optional[str] = None
    size_adjusted_price: Optional[Decimal] = None
    status: ItemStatus = ItemStatus.ACTIVE
    name: str = ""

    def to_item(self) -> OrderLineItem:
        return OrderLineItem(**self.model_dump())


class OrderIn(BaseModel):
    order_id: str
    items: List[LineItemIn]
    subtotal: Decimal = Decimal("0")
    delivery_charge: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")
    currency: str = "INR"

    def to_order(self) -> Order:
        return Order(
            order_id=self.order_id,
            items=[item.to_item() for item in self.items],
            subtotal=self.subtotal,
            delivery_charge=self.delivery_charge,
            grand_total=self.grand_total,
            currency=self.currency,
        )


class AddressIn(BaseModel):
    city: str
    address_line: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    mobile: str = ""


class QuoteRequest(BaseModel):
    address: AddressIn
    subtotal: Decimal
    origin_city: Optional[str] = None


class AuditRequest(BaseModel):
    repair: bool = False
    limit: Optional[int] = None
    after: Optional[str] = None
    include_inactive: bool = True


def encode(obj):
    """JSON-ready copy with money kept as exact decimal strings ('900.00')."""
    return jsonable_encoder(obj, custom_encoder={Decimal: str})


def price_to_dict(price: ResolvedPrice) -> dict:
    data = encode(price)
    data["savings"] = encode(price.savings)
    data["trace_text"] = price.get_trace_text()
    return data


def report_to_dict(report: ValidationReport) -> dict:
    return encode({
        "order_id": report.order_id,
        "is_valid": report.is_valid,
        "can_auto_fix": report.can_auto_fix,
        "calculated_subtotal": report.calculated_subtotal,
        "errors": report.errors,
        "warnings": report.warnings,
        "discrepancies": [
            {
                "target": d.target,
                "kind": d.kind.value,
                "stored": d.stored,
                "calculated": d.calculated,
                "difference": d.difference,
            }
            for d in report.discrepancies
        ],
        "expected": {item_id: price_to_dict(p) for item_id, p in report.expected.items()},
    })


@app.get("/")
async def root():
    return {"status": "online", "message": "Order Pricing API Active"}


@app.post("/price/item")
def resolve_item_price(item: LineItemIn, service: PricingService = Depends(get_service)):
    try:
        return price_to_dict(service.resolve_item_price(item.to_item()))
    except InvalidQuantity as e:
        raise HTTPException(status_code=422, detail=str(e))
    except CatalogItemNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/orders/validate")
def validate_order_payload(order: OrderIn, include_inactive: bool = True,
                           service: PricingService = Depends(get_service)):
    return report_to_dict(service.validate_order(order.to_order(), include_inactive=include_inactive))


@app.post("/orders/{order_id}/validate")
def validate_stored_order(order_id: str, include_inactive: bool = True,
                          service: PricingService = Depends(get_service)):
    try:
        return report_to_dict(service.validate_order(order_id, include_inactive=include_inactive))
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/orders/{order_id}/repair")
def repair_order(order_id: str, include_inactive: bool = True,
                 service: PricingService = Depends(get_service)):
    try:
        return encode(service.repair_order(order_id, include_inactive=include_inactive).to_dict())
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAutoFixable as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "errors": e.errors})
    except OrderConflict as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.post("/delivery/quote")
def quote_delivery(req: QuoteRequest, service: PricingService = Depends(get_service)):
    quote = service.quote_delivery(Address(**req.address.model_dump()), req.subtotal, req.origin_city)
    data = encode(quote)
    data["degraded"] = quote.degraded
    return data


@app.post("/audit")
def run_audit(req: AuditRequest, service: PricingService = Depends(get_service)):
    summary = service.audit(repair=req.repair, limit=req.limit, after=req.after,
                            include_inactive=req.include_inactive)
    return build_pricing_report(summary)


@app.get("/system/status")
def get_status(service: PricingService = Depends(get_service)):
    settings = service.settings
    return {
        "engine_active": True,
        "origin_city": settings.origin_city,
        "catalog_items": len(service.catalog),
        "orders": len(service.store),
        "catalog_path": str(settings.catalog_csv),
    }
