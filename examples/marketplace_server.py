"""
Minimal local marketplace for trying the CLI end to end on Base Sepolia.

    pip install -e ".[examples]"
    DEMO_PAY_TO=0xYourAddress python examples/marketplace_server.py
    OCTORAIL_URL=http://127.0.0.1:3000 octorail list
"""

import os

import uvicorn
from fastapi import FastAPI, HTTPException, Request

from x402.http import FacilitatorConfig, HTTPFacilitatorClient, PaymentOption
from x402.http.middleware.fastapi import PaymentMiddlewareASGI
from x402.http.types import RouteConfig
from x402.mechanisms.evm.exact import ExactEvmServerScheme
from x402.server import x402ResourceServer

NETWORK = "eip155:84532"
PAY_TO = os.getenv("DEMO_PAY_TO", "0x0000000000000000000000000000000000000001")
FACILITATOR_URL = os.getenv("DEMO_FACILITATOR_URL", "https://x402.org/facilitator")

CATALOG = {
    ("demo", "echo"): {
        "name": "Echo",
        "ownerHandle": "demo",
        "slug": "echo",
        "price": "$0.001",
        "category": "utility",
        "upstreamMethod": "POST",
        "description": "Returns the request body",
        "inputSchema": {
            "properties": {"text": {"type": "string", "description": "Text to echo"}},
            "required": ["text"],
        },
    },
    ("demo", "time"): {
        "name": "Server Time",
        "ownerHandle": "demo",
        "slug": "time",
        "price": "$0.001",
        "category": "utility",
        "upstreamMethod": "GET",
        "description": None,
    },
}

app = FastAPI()

server = x402ResourceServer(HTTPFacilitatorClient(FacilitatorConfig(url=FACILITATOR_URL)))
server.register(NETWORK, ExactEvmServerScheme())

routes = {
    f"POST /v1/apis/{owner}/{slug}/call": RouteConfig(
        accepts=[
            PaymentOption(
                scheme="exact",
                pay_to=PAY_TO,
                price=api["price"],
                network=NETWORK,
            ),
        ],
        mime_type="application/json",
        description=api["name"],
    )
    for (owner, slug), api in CATALOG.items()
}

app.add_middleware(PaymentMiddlewareASGI, routes=routes, server=server)

_call_count = 0


@app.get("/apis")
async def list_apis(search: str = "", category: str = ""):
    apis = list(CATALOG.values())
    if search:
        apis = [a for a in apis if search.lower() in a["name"].lower()]
    if category:
        apis = [a for a in apis if a["category"] == category]
    return {"apis": apis}


@app.get("/apis/{owner}/{slug}")
async def get_api(owner: str, slug: str):
    api = CATALOG.get((owner, slug))
    if api is None:
        raise HTTPException(status_code=404, detail="API not found")
    return api


@app.post("/v1/apis/{owner}/{slug}/call")
async def call_api(owner: str, slug: str, request: Request):
    global _call_count
    if (owner, slug) not in CATALOG:
        raise HTTPException(status_code=404, detail="API not found")
    _call_count += 1
    body = await request.json()
    return {
        "callId": f"demo-{_call_count}",
        "status": "success",
        "caller": request.headers.get("x-wallet"),
        "echo": body,
    }


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=3000)
