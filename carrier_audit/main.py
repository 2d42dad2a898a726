from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carrier_audit import config
from carrier_audit.dependencies import build_services
from carrier_audit.routers.audit import router as audit_router
from carrier_audit.routers.cases import router as cases_router
from carrier_audit.routers.clipboard import router as clipboard_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.configure_logging()
    if not hasattr(app.state, "services"):
        app.state.services = build_services()
    app.state.services.cache.start_sweeper()
    yield
    app.state.services.cache.stop_sweeper()


app = FastAPI(title="Carrier Audit Desk", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(audit_router)
app.include_router(cases_router)
app.include_router(clipboard_router)


@app.get("/")
async def root():
    return {"status": "ONLINE", "engine": "Carrier Audit Desk"}
