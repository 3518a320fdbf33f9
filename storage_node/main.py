# storage_node/main.py
import logging
import os
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, PlainTextResponse

from shared.filenames import sanitize_filename
from shared.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(node_id: Optional[str] = None, data_dir: Optional[str] = None) -> FastAPI:
    node_id = node_id or os.getenv("NODE_ID", "node-" + os.getenv("PORT", "9001"))
    root = Path(data_dir or os.getenv("DATA_DIR", "files")).resolve()
    root.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title=f"Replistore Storage Node {node_id}")
    app.state.node_id = node_id
    app.state.data_dir = root

    def file_path(raw: Optional[str]) -> Path:
        name = sanitize_filename(raw)
        if not name:
            raise HTTPException(status_code=400, detail="Invalid filename")
        return root / name

    @app.get("/health")
    def health():
        return {"status": "ok", "node_id": node_id}

    @app.post("/upload", response_class=PlainTextResponse)
    async def upload(file: Optional[UploadFile] = File(None)):
        if file is None:
            raise HTTPException(status_code=400, detail="Missing file")
        path = file_path(file.filename)

        try:
            with path.open("wb") as f:
                while chunk := await file.read(1024 * 1024):
                    f.write(chunk)
        except OSError as e:
            logger.error(f"Write of {path.name} failed: {e}")
            raise HTTPException(status_code=500, detail="Write error") from e

        logger.info(f"Uploaded: {path}")
        return f"OK|{path.name}"

    @app.get("/delete", response_class=PlainTextResponse)
    def delete(filename: Optional[str] = Query(None)):
        if not filename:
            raise HTTPException(status_code=400, detail="filename required")
        path = file_path(filename)

        try:
            path.unlink()
        except FileNotFoundError:
            logger.info(f"Delete failed, not found: {path}")
            raise HTTPException(status_code=404, detail="File not found")
        except OSError as e:
            logger.error(f"Delete of {path} failed: {e}")
            raise HTTPException(status_code=500, detail="Delete error") from e

        logger.info(f"Deleted: {path}")
        return f"Deleted {path.name}"

    @app.get("/files")
    def list_files():
        try:
            return sorted(p.name for p in root.iterdir() if p.is_file())
        except OSError as e:
            raise HTTPException(status_code=500, detail="Cannot read directory") from e

    @app.get("/files/{name}")
    def get_file(name: str):
        path = file_path(name)
        if not path.is_file():
            raise HTTPException(status_code=404, detail="File not found")
        return FileResponse(path)

    return app


def main():
    port = int(os.getenv("PORT", "9001"))
    node_id = os.getenv("NODE_ID", f"node-{port}")
    setup_logging(node_id, os.getenv("LOG_LEVEL", "INFO"))

    app = create_app(node_id=node_id)
    logger.info(f"Storage node {node_id} listening on port {port}, data in {app.state.data_dir}")
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=port)


if __name__ == "__main__":
    main()
