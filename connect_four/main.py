import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from connect_four.config import CORS_ORIGINS, LOG_LEVEL
from connect_four.ws_handler import router as ws_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Connect Four Server")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(ws_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
