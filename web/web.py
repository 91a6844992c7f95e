"""Web entry point: a small FastAPI app around the randomizer."""
import logging as log
import os
import sys

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

# Add parent directory to path to import the randomizer packages
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from flags import Flags
from logic.boundary import ErrorKind, randomize
from version import __version__

STATUS_CODES = {
    ErrorKind.MALFORMED_INPUT: 400,
    ErrorKind.GENERATION_FAILED: 422,
    ErrorKind.INTERNAL: 500,
}

app = FastAPI(title="Neutopia Randomizer", version=__version__)


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


@app.post("/randomize")
async def randomize_rom(
        rom: UploadFile = File(...),
        seed: str = Form(...),
        placement: str = Form("global"),
        no_downgrade: bool = Form(True)):
    """Randomize an uploaded ROM and return it as a download."""
    flags = Flags()
    try:
        flags.set_from_string("placement", placement)
        flags.set("no_downgrade", no_downgrade)
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    rom_bytes = await rom.read()
    log.info(f"Randomizing {rom.filename} ({len(rom_bytes)} bytes) with seed '{seed}'")
    # randomize() is CPU bound and runs in the worker threadpool
    result = await run_in_threadpool(randomize, rom_bytes, seed, flags)
    if not result.ok:
        raise HTTPException(status_code=STATUS_CODES[result.error_kind], detail=result.message)

    return Response(
        content=result.rom,
        media_type='application/octet-stream',
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'}
    )


if __name__ == "__main__":
    # Configure logging
    log.basicConfig(
        level=log.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Run the app
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
