from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.chat import router as chat_router
from api.chat_audio import router as chat_audio_router
from api.catalog import router as catalog_router

app = FastAPI(title="Hardware Kiosk Assistant")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router, prefix="/api")
app.include_router(chat_audio_router, prefix="/api")
app.include_router(catalog_router, prefix="/api")


@app.get("/health")
def health():
    return {"ok": True}
