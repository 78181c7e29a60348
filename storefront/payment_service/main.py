# storefront/payment_service/main.py
from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Payment Gateway (dev mock)")

# order_id -> status; CARD settles at once, MPESA waits for the STK push
PAYMENTS: dict[int, dict] = {}


class PaymentIn(BaseModel):
    amount: int
    currency: str
    method: str
    order_id: int


@app.post("/payments")
def create_payment(payload: PaymentIn, idempotency_key: str | None = Header(None)):
    existing = PAYMENTS.get(payload.order_id)
    if existing:
        return existing

    if payload.amount % 100 == 13:
        status = "FAILED"
    elif payload.method == "MPESA":
        status = "PENDING"
    else:
        status = "COMPLETED"

    PAYMENTS[payload.order_id] = {
        "order_id": payload.order_id,
        "status": status,
        "reference": idempotency_key,
    }
    return PAYMENTS[payload.order_id]


@app.get("/payments/{order_id}")
def get_payment(order_id: int):
    payment = PAYMENTS.get(order_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment
