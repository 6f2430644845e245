"""Payments — a small caaspay service driven by ./config.

Routes, callers and the run mode all come from the YAML files next to this
module; the code only binds handler names to functions. Edit
config/routes.yaml or config/credentials.yaml while the server runs and
the change is picked up without a restart.

Run:
    cd examples/payments && caaspay run app:api --watch

Try:
    curl -u svc-a:secret-a localhost:8080/accounts/42
    curl -H 'X-Caller-Id: svc-b' -H 'X-Caller-Secret: secret-b' \\
         -d '{"amount": 1250}' localhost:8080/accounts/42/payments
"""

import logging
import threading
import time
from pathlib import Path

from caaspay import Api, HandlerRegistry, Request, Response, ServerConfig
from caaspay.errors import HTTPError

logger = logging.getLogger("payments")

handlers = HandlerRegistry()


# ---------------------------------------------------------------------------
# In-memory ledger (thread-safe: sync handlers run in worker threads)
# ---------------------------------------------------------------------------

_payments: dict[str, list[dict]] = {}
_lock = threading.Lock()


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@handlers.register("health")
async def health(ctx, request, path_params, caller):
    return {"status": "ok", "config_version": ctx.snapshot_version, "mode": ctx.env.mode}


@handlers.register("get_account")
async def get_account(ctx, request, path_params, caller):
    account_id = path_params["id"]
    with _lock:
        count = len(_payments.get(account_id, []))
    return {"id": account_id, "payments": count, "viewer": caller.id}


@handlers.register("whoami")
async def whoami(ctx, request, path_params, caller):
    return {"id": caller.id, "capabilities": sorted(caller.capabilities)}


@handlers.register("create_payment")
async def create_payment(ctx, request: Request, path_params, caller):
    data = await request.json()
    amount = data.get("amount") if isinstance(data, dict) else None
    if not isinstance(amount, int) or amount <= 0:
        raise HTTPError(status=422, detail="amount must be a positive integer (minor units)")
    payment = {
        "account": path_params["id"],
        "amount": amount,
        "created_by": caller.id,
        "request_id": ctx.request_id,
    }
    with _lock:
        _payments.setdefault(path_params["id"], []).append(payment)
    return payment, 201


@handlers.register("get_file")
def get_file(ctx, request, path_params, caller):
    # Sync handler: runs in a worker thread
    return Response(f"contents of {path_params['path']}\n")


# ---------------------------------------------------------------------------
# Api
# ---------------------------------------------------------------------------

api = Api(handlers, config=ServerConfig(config_dir=str(Path(__file__).parent / "config")))


async def timing(request, next):
    start = time.perf_counter()
    response = await next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %d (%.1fms)", request.method, request.path, response.status, elapsed_ms)
    return response.with_header("Server-Timing", f"app;dur={elapsed_ms:.1f}")


api.add_middleware(timing)


if __name__ == "__main__":
    api.run()
