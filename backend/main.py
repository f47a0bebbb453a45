import dotenv
dotenv.load_dotenv()
import logging

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_config
from app.deps import get_db
from app.api.todos import router as todos_router, register_error_handlers

config = get_config()
logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Todo dependency graph")

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(todos_router, prefix="/api", tags=["todos"])

@app.get("/health")
def health_check(db=Depends(get_db)):
    return {"status": "ok"}

@app.get("/")
def root():
    return {"message": "API is running"}
