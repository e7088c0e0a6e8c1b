import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, List, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import Settings, get_settings
from database import (
    ORDERS,
    PRODUCTS,
    REVIEWS,
    USERS,
    DocumentStore,
    get_store,
    parse_object_id,
    serialize_doc,
)
from logging_config import setup_logging
from payments import PaymentConfigurationError, PaymentGatewayError, RazorpayGateway, get_gateway
from pricing import parse_price
from schemas import Customer, Document, Order, OrderItem, Product, User

setup_logging()
logger = structlog.get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    logger.info("application_startup", app_name=settings.app_name, env=settings.app_env)

    # A failed connection is logged; the API still starts and requests fail individually.
    store = DocumentStore.from_settings(settings)
    if store is None:
        logger.warning("database_not_configured")
    elif store.ping():
        try:
            store.ensure_indexes()
            logger.info("database_connected", database=store.name)
        except PyMongoError as e:
            logger.error("database_index_creation_failed", error=str(e))
    app.state.store = store
    app.state.gateway = RazorpayGateway.from_settings(settings)

    yield

    logger.info("application_shutdown")
    if store is not None:
        store.close()


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start_time = time.time()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=round(time.time() - start_time, 4),
        )
        return response
    finally:
        structlog.contextvars.clear_contextvars()


# Error translation
def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(messages) or "Invalid request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = _format_validation_errors(exc)
    logger.warning("request_validation_failed", detail=detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@app.exception_handler(PyMongoError)
async def database_exception_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("database_error", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error"},
    )


@app.exception_handler(PaymentGatewayError)
async def gateway_exception_handler(request: Request, exc: PaymentGatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", error=str(exc), error_type=type(exc).__name__)
    response = JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
    # Unhandled errors bypass the middleware, so the header is set here.
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


# Request models
class CreatePaymentOrderRequest(BaseModel):
    amount: float


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class OrderProductIn(Document):
    product_id: Optional[str] = Field(None, alias="_id")
    name: Optional[str] = None
    price: Any = None
    quantity: Optional[int] = None


class StoreOrderRequest(Document):
    order_id: Optional[str] = None
    products: Optional[List[OrderProductIn]] = None
    total_amount: Any = None
    customer: Optional[Customer] = None
    payment_id: Optional[str] = None
    # Gateway signature over "<orderId>|<paymentId>", checked when present
    signature: Optional[str] = None


def _is_blank(value: Any) -> bool:
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_none=True)
    return value is None or value in ("", [], {})


# Routes
@app.get("/")
def read_root():
    return PlainTextResponse("Connection successful")


@app.get("/test")
def test_database(request: Request):
    store: Optional[DocumentStore] = getattr(request.app.state, "store", None)
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
    }
    try:
        if store is not None:
            response["database_name"] = store.name
            response["collections"] = store.list_collection_names()[:10]
            response["database"] = "✅ Connected"
    except PyMongoError as e:
        response["database"] = f"⚠️ {str(e)[:80]}"
    return response


# Products
@app.get("/products")
def list_products(store: DocumentStore = Depends(get_store)):
    return [serialize_doc(p) for p in store.get_documents(PRODUCTS)]


@app.get("/products/{product_id}")
def get_product(product_id: str, store: DocumentStore = Depends(get_store)):
    oid = parse_object_id(product_id)
    if oid is None:
        raise HTTPException(status_code=400, detail="Invalid ID")
    doc = store.find_one(PRODUCTS, {"_id": oid})
    if not doc:
        raise HTTPException(status_code=404, detail="Product not found")
    return serialize_doc(doc)


@app.post("/add-product", status_code=status.HTTP_201_CREATED)
def add_product(payload: Product, store: DocumentStore = Depends(get_store)):
    doc = store.create_document(PRODUCTS, payload.to_document(exclude_unset=True))
    logger.info("product_created", product_id=str(doc["_id"]), name=payload.name)
    return serialize_doc(doc)


# Reviews
@app.get("/reviews")
def list_reviews(store: DocumentStore = Depends(get_store)):
    return [serialize_doc(r) for r in store.get_documents(REVIEWS)]


# Payments
@app.post("/create-order")
def create_payment_order(
    payload: CreatePaymentOrderRequest,
    gateway: RazorpayGateway = Depends(get_gateway),
):
    return gateway.create_order(payload.amount)


@app.post("/verify-payment")
def verify_payment(payload: VerifyPaymentRequest, gateway: RazorpayGateway = Depends(get_gateway)):
    try:
        verified = gateway.verify_signature(
            payload.razorpay_order_id,
            payload.razorpay_payment_id,
            payload.razorpay_signature,
        )
    except PaymentConfigurationError as e:
        logger.error("payment_verification_error", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal Server Error"},
        )

    if not verified:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Payment verification failed"},
        )
    return {"success": True, "message": "Payment verified successfully"}


# Orders
@app.post("/store-order", status_code=status.HTTP_201_CREATED)
def store_order(
    payload: StoreOrderRequest,
    store: DocumentStore = Depends(get_store),
    gateway: RazorpayGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    required = {
        "orderId": payload.order_id,
        "products": payload.products,
        "totalAmount": payload.total_amount,
        "customer": payload.customer,
        "paymentId": payload.payment_id,
    }
    missing = [name for name, value in required.items() if _is_blank(value)]
    if missing:
        logger.warning("order_missing_fields", missing=missing)
        raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")

    # Without a signature the order is trusted as paid; /verify-payment is a separate call.
    if payload.signature:
        if not gateway.verify_signature(payload.order_id, payload.payment_id, payload.signature):
            raise HTTPException(status_code=400, detail="Payment verification failed")
    elif settings.require_payment_signature:
        raise HTTPException(status_code=400, detail="Payment signature required")

    items = [
        OrderItem(
            product_id=parse_object_id(p.product_id) or p.product_id,
            name=p.name,
            price=parse_price(p.price),
            quantity=p.quantity,
        )
        for p in payload.products
    ]
    order = Order(
        order_id=payload.order_id,
        items=items,
        total_amount=parse_price(payload.total_amount),
        payment_status="Paid",
        payment_id=payload.payment_id,
        customer=payload.customer,
    )
    doc = store.create_document(ORDERS, order.to_document())
    logger.info(
        "order_stored",
        order_id=payload.order_id,
        payment_id=payload.payment_id,
        items=len(items),
        total_amount=order.total_amount,
    )
    return {"message": "Order stored successfully!", "order": serialize_doc(doc)}


@app.get("/get-orders")
def get_orders(email: Optional[str] = None, store: DocumentStore = Depends(get_store)):
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")
    orders = store.get_documents(ORDERS, {"customer.email": email})
    if not orders:
        raise HTTPException(status_code=404, detail="No orders found for this email")
    return [serialize_doc(o) for o in orders]


# Users (plain-text password as supplied; no auth in this API)
@app.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: User, store: DocumentStore = Depends(get_store)):
    if store.find_one(USERS, {"email": payload.email}):
        raise HTTPException(status_code=400, detail="User already exists")
    try:
        doc = store.create_document(USERS, payload.to_document())
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")
    logger.info("user_registered", user_id=str(doc["_id"]), google_auth=payload.google_auth)
    return {"message": "User registered successfully"}


@app.get("/user")
def get_user(email: Optional[str] = None, store: DocumentStore = Depends(get_store)):
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")
    user = store.find_one(USERS, {"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    user.pop("password", None)
    return serialize_doc(user)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
