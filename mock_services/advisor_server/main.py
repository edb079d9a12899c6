from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from typing import Any, Dict

app = FastAPI(title="Mock Advisor Server", version="1.0.0")


@app.get("/health")
def health(): return {"status": "ok"}


@app.post("/advice")
def advice(payload: Dict[str, Any]):
    product = payload.get("product") or {}
    name = product.get("product_name")
    if not name:
        raise HTTPException(status_code=400, detail="product_name required")
    reasons = payload.get("rule_reasons") or []
    verdict = payload.get("classification", "moderate")
    summary = reasons[0] if reasons else "No concerns found"
    return JSONResponse(content={"reason": f"{name} looks {verdict}: {summary}."})


@app.post("/insight")
def insight(payload: Dict[str, Any]):
    month = payload.get("month")
    if not month:
        raise HTTPException(status_code=400, detail="month required")
    income = float(payload.get("income") or 0)
    expenses = float(payload.get("expenses") or 0)
    categories = payload.get("categories") or {}
    top = max(categories, key=categories.get) if categories else None
    text = f"In {month} you earned ₹{income:,.2f} and spent ₹{expenses:,.2f}."
    if top:
        text += f" Most of your spending went to {top}."
    return JSONResponse(content={"insight": text})
