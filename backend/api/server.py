# api/server.py
# ============================================================================
# ELORA CHECKOUT BACKEND - FASTAPI SERVER
# ============================================================================
# Storefront checkout init, Comgate payment notifications, health check.
# create_app() is the composition root: store, gateway, notifier and the
# background worker are built here (or injected) and shared by the handlers.
# ============================================================================

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from api.forms import read_payload
from config import ShopConfig
from gateway.comgate import ComgateClient
from logging_config import configure_logging
from pipeline.checkout import (
    CheckoutOrchestrator,
    GatewayRejectedError,
    MissingConfigurationError,
)
from pipeline.reconciler import NotificationReconciler
from schemas.checkout import CheckoutValidationError
from services.notifier import INotifier, ResendNotifier
from storage.order_store import IOrderStore, InMemoryOrderStore
from tasks.background import BackgroundWorker


VERSION = "1.0.0"


def create_app(
    config: Optional[ShopConfig] = None,
    *,
    store: Optional[IOrderStore] = None,
    gateway: Optional[ComgateClient] = None,
    notifier: Optional[INotifier] = None,
    worker: Optional[BackgroundWorker] = None,
) -> FastAPI:
    config = config or ShopConfig.load()
    store = store or InMemoryOrderStore()
    gateway = gateway or ComgateClient.from_config(config)
    notifier = notifier or ResendNotifier.from_config(config)
    worker = worker or BackgroundWorker("notifications")

    checkout = CheckoutOrchestrator(config, gateway, store)
    reconciler = NotificationReconciler(
        store=store,
        gateway=gateway,
        notifier=notifier,
        worker=worker,
        owner_email=config.owner_email,
    )
    logger = structlog.get_logger().bind(component="server")

    # ========================================================================
    # LIFESPAN MANAGEMENT
    # ========================================================================

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.log_level, json_logs=not config.debug)
        logger.info("server_starting",
                    version=VERSION,
                    test_mode=config.comgate_test,
                    gateway_configured=config.has_gateway_credentials,
                    mail_configured=config.has_mail_credentials,
                    owner_email_configured=bool(config.owner_email))
        yield
        logger.info("server_stopping", pending_notifications=worker.pending)
        await worker.shutdown()
        await gateway.close()
        await notifier.close()

    app = FastAPI(
        title="ELORA Checkout Backend",
        description="Comgate checkout and payment notification service",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.worker = worker
    app.state.checkout = checkout
    app.state.reconciler = reconciler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        """Add response timing header."""
        start = time.perf_counter()
        response = await call_next(request)
        duration = (time.perf_counter() - start) * 1000
        response.headers["X-Response-Time-Ms"] = f"{duration:.2f}"
        return response

    # ========================================================================
    # ENDPOINTS
    # ========================================================================

    @app.get("/health")
    async def health_check():
        return {"ok": True}

    @app.post("/api/checkout/init")
    async def init_checkout(request: Request):
        try:
            payload = await read_payload(request)
            result = await checkout.init_checkout(payload)
        except CheckoutValidationError as e:
            return JSONResponse(status_code=400, content={"message": e.message})
        except MissingConfigurationError as e:
            return JSONResponse(status_code=500, content={"message": str(e)})
        except GatewayRejectedError as e:
            return JSONResponse(status_code=502, content=e.to_response())
        except Exception as e:
            logger.exception("checkout_error", error=str(e))
            return JSONResponse(status_code=500, content={"message": str(e) or "Server error"})
        return result.to_response()

    @app.post("/api/comgate/notify")
    async def comgate_notify(request: Request):
        """
        Always 200 "OK", immediately. Any non-200 makes Comgate retry the
        callback; the reconciliation itself runs on the background worker.
        """
        try:
            payload = dict(request.query_params)
            payload.update(await read_payload(request))
            ack = reconciler.handle_notification(payload)
        except Exception as e:
            logger.exception("notification_intake_error", error=str(e))
            ack = "OK"
        return PlainTextResponse(ack, status_code=200)

    return app


app = create_app()


# ============================================================================
# MAIN
# ============================================================================

def main() -> None:
    config = app.state.config
    uvicorn.run(
        "api.server:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
