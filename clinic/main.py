import logging

from fastapi import FastAPI

from clinic import model
from clinic.api import examination, lab
from clinic.config import get_settings
from clinic.database import engine

settings = get_settings()
logging.basicConfig(
    filename=settings.log_file,
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s"
)

app = FastAPI(title="Clinic Workflow Engine", version="1.0.0")
model.Base.metadata.create_all(bind=engine)

app.include_router(examination.router)
app.include_router(lab.router)

@app.get("/")
def check_health():
    return {"message": "Clinic workflow engine running"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("clinic.main:app", port=8003, reload=True)
