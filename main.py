import logging

import uvicorn
from fastapi import FastAPI

from adeguard.config import settings
from adeguard.api.analyze import router as analyze_router
from adeguard.api.chat import router as chat_router
from adeguard.api.history import router as history_router
from adeguard.api.speech import router as speech_router
from adeguard.api.voice import ws_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="ADEGuard")

app.include_router(analyze_router)
app.include_router(speech_router)
app.include_router(chat_router)
app.include_router(history_router)
app.include_router(ws_router)

@app.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV}

if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        reload=False,
    )
