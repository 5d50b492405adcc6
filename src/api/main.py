import logging
import os

from fastapi import FastAPI

from api.routers import events, messages, ops, todos

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="calendar-assist")

app.include_router(messages.router)
app.include_router(todos.router)
app.include_router(events.router)
app.include_router(ops.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
