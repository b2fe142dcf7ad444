from __future__ import annotations

from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Query

from aer import db
from aer.api_models import EnvVarModel, ReconcileRequest, ReconcileResponse
from aer.errors import ContainerNotFoundError, FetchError, OverridesError, WriteError
from aer.gateway import Gateway, build_gateway
from aer.models import ObjectKey
from aer.overrides import configured_overrides
from aer.reconciler import Reconciler
from aer.runtime import RuntimeState
from aer.settings import settings


def create_app(gateway: Gateway | None = None, runtime: RuntimeState | None = None) -> FastAPI:
    gw = gateway if gateway is not None else build_gateway(settings)
    rt = runtime or RuntimeState()
    reconciler = Reconciler(gw, rt, overrides_loader=lambda: configured_overrides(settings))

    app = FastAPI(title="Agent Env Reconciler")
    app.state.gateway = gw
    app.state.runtime = rt
    app.state.reconciler = reconciler

    @app.on_event("startup")
    def startup() -> None:
        db.init_db()
        db.log_event("INFO", f"API started with gateway '{getattr(gw, 'name', type(gw).__name__)}'")
        if settings.enable_loop:
            reconciler.start()

    @app.on_event("shutdown")
    def shutdown() -> None:
        reconciler.stop()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy", "gateway": getattr(gw, "name", type(gw).__name__)}

    @app.post("/reconcile", response_model=ReconcileResponse)
    def run_reconcile(req: ReconcileRequest) -> ReconcileResponse:
        key = ObjectKey(
            namespace=req.namespace or settings.namespace,
            name=req.name or settings.workload_name,
        )
        container = req.container or settings.container_name

        # None makes the reconciler load the configured overrides file.
        overrides = [m.to_entry() for m in req.overrides] if req.overrides is not None else None

        try:
            st = reconciler.run_once(
                overrides,
                key=key,
                container_name=container,
                skip_unchanged=req.skip_unchanged,
            )
        except OverridesError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ContainerNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except (FetchError, WriteError) as e:
            raise HTTPException(status_code=502, detail=f"{type(e).__name__}: {e}")

        if st.state == "skipped":
            raise HTTPException(status_code=409, detail=st.message)

        return ReconcileResponse(
            workload=st.workload,
            container=st.container,
            wrote=st.wrote,
            env=[EnvVarModel(name=e.name, value=e.value) for e in st.env],
        )

    @app.get("/workloads/{namespace}/{name}")
    def show_workload(namespace: str, name: str) -> dict:
        try:
            return gw.read(ObjectKey(namespace=namespace, name=name)).as_dict()
        except FetchError as e:
            code = 404 if e.status_code == 404 else 502
            raise HTTPException(status_code=code, detail=f"FetchError: {e}")

    @app.get("/status")
    def status() -> list[dict]:
        return [
            {
                "workload": st.workload,
                "container": st.container,
                "state": st.state,
                "wrote": st.wrote,
                "message": st.message,
                "env_count": st.env_count,
                "at": st.at,
            }
            for st in rt.list_status()
        ]

    @app.get("/events")
    def events(limit: int = Query(50, ge=1, le=1000)) -> list[dict]:
        return db.latest_events(limit)

    @app.get("/passes")
    def passes(limit: int = Query(50, ge=1, le=1000), workload: str | None = None) -> list[dict]:
        return [asdict(p) for p in db.latest_passes(limit, workload=workload)]

    return app


app = create_app()
