# coordinator/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import quote

import uvicorn
from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from coordinator.config import CoordinatorSettings, load_settings
from coordinator.geo import GeoResolver, PrefixGeoResolver, client_address
from coordinator.health_monitor import NodeHealthMonitor
from coordinator.local_store import LocalFileStore, LocalPersistError
from coordinator.node_client import StorageNodeClient
from coordinator.replica_status import ReplicaStatusAggregator
from coordinator.replication import ReplicationCoordinator
from coordinator.routing import distance_table, nearest
from shared.filenames import sanitize_filename
from shared.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _require_filename(raw: Optional[str]) -> str:
    if not raw:
        raise HTTPException(status_code=400, detail="filename required")
    name = sanitize_filename(raw)
    if not name:
        raise HTTPException(status_code=400, detail="Invalid filename")
    return name


def create_app(settings: Optional[CoordinatorSettings] = None,
               resolver: Optional[GeoResolver] = None,
               client: Optional[StorageNodeClient] = None) -> FastAPI:
    settings = settings or load_settings()
    resolver = resolver or PrefixGeoResolver()
    client = client or StorageNodeClient(timeout=settings.node_timeout_seconds)

    store = LocalFileStore(settings.upload_dir)
    replicator = ReplicationCoordinator(settings.nodes, store, client, settings.node_timeout_seconds)
    aggregator = ReplicaStatusAggregator(settings.nodes, store, client, settings.node_timeout_seconds)
    health_monitor = NodeHealthMonitor(settings.nodes, client, settings.health_check_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting coordinator with {len(settings.nodes)} storage node(s): "
                    f"{', '.join(f'{n.node_id}={n.base_url}' for n in settings.nodes)}")
        health_monitor.start()
        yield
        logger.info("Shutting down coordinator...")
        health_monitor.shutdown()

    app = FastAPI(title="Replistore Coordinator", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.replicator = replicator
    app.state.aggregator = aggregator
    app.state.health_monitor = health_monitor

    @app.get("/health")
    def health():
        return {"status": "ok", "nodes": list(settings.node_ids)}

    @app.get("/nodes")
    def list_nodes():
        return [
            {
                "node_id": n.node_id,
                "base_url": n.base_url,
                "port": n.port,
                "latitude": n.latitude,
                "longitude": n.longitude,
            }
            for n in settings.nodes
        ]

    @app.get("/admin/health")
    def get_node_health(node_id: Optional[str] = None):
        status = health_monitor.get_health_status(node_id)
        if status is None:
            raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
        return status

    @app.post("/upload")
    async def upload(file: Optional[UploadFile] = File(None)):
        if file is None:
            raise HTTPException(status_code=400, detail="Missing file")
        name = sanitize_filename(file.filename)
        if not name:
            raise HTTPException(status_code=400, detail="Missing or invalid filename")

        content = await file.read()
        try:
            result = await replicator.upload(name, content)
        except LocalPersistError as e:
            logger.error(f"Upload of {name} rejected: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e

        return {"status": "ok", **result.model_dump()}

    @app.get("/delete")
    async def delete(filename: Optional[str] = Query(None)):
        name = _require_filename(filename)
        result = await replicator.delete(name)
        return {"status": "deleted", **result.model_dump()}

    @app.get("/files")
    async def list_files(request: Request):
        report = await aggregator.list_with_replica_status()

        address = client_address(request)
        nearest_node = nearest(resolver.resolve(address), settings.nodes)

        return {
            "files": [f.model_dump() for f in report.files],
            "nodes": [n.model_dump() for n in report.nodes],
            "nearest_node": nearest_node.node_id,
        }

    @app.get("/files/{name}")
    def get_file(name: str):
        safe_name = sanitize_filename(name)
        if not safe_name or not store.exists(safe_name):
            raise HTTPException(status_code=404, detail="File not found")
        return FileResponse(store.path_for(safe_name))

    @app.get("/nearest")
    def nearest_view(request: Request, filename: Optional[str] = Query(None)):
        name = _require_filename(filename)

        address = client_address(request)
        position = resolver.resolve(address)
        distances = distance_table(position, settings.nodes)
        chosen = next(d for d in distances if d.is_nearest)

        return {
            "filename": name,
            "client": {"address": address, "latitude": position.latitude, "longitude": position.longitude},
            "nearest_node": chosen.node_id,
            "nearest_port": chosen.port,
            "preview_url": f"{chosen.base_url}/files/{quote(name)}",
            "distances": [d.model_dump() for d in distances],
        }

    return app


def main():
    settings = load_settings()
    setup_logging("coordinator", settings.log_level)
    app = create_app(settings)
    host = os.getenv("HOST", "0.0.0.0")
    logger.info(f"Coordinator listening on {host}:{settings.port}")
    uvicorn.run(app, host=host, port=settings.port)


if __name__ == "__main__":
    main()
