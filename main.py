from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from fastapi.middleware.cors import CORSMiddleware
import os

from qr_mesh import MeshOptions
from QR_code import ENCODING_FAILED, generate

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
MAX_TEXT_LENGTH = 4096  # well above what a version 40 code can hold
DEFAULTS = MeshOptions()

app = FastAPI()

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with your domain
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))
app.mount("/static", StaticFiles(directory=os.path.join(BASE_DIR, "static")), name="static")


@app.get("/")
async def generate_form(request: Request):
    return templates.TemplateResponse(request, "index.html", {
        "defaults": DEFAULTS
    })


@app.post("/api/generate")
def generate_stl(
    text: str = Form(..., max_length=MAX_TEXT_LENGTH),
    base_height: float = Form(DEFAULTS.base_height, ge=0),
    base_size: float = Form(DEFAULTS.base_size, ge=0),
    pixel_size: float = Form(DEFAULTS.pixel_size, gt=0),
):
    """Encode the submitted text and return the STL as a download"""
    payload = text.encode("utf-8")
    print(f"Generate request: {len(payload)} bytes, pixel_size={pixel_size}, "
          f"base_size={base_size}, base_height={base_height}")

    try:
        stl = generate(payload, base_height, base_size, pixel_size)
    except RuntimeError as e:
        status_code = 400 if str(e) == ENCODING_FAILED else 500
        raise HTTPException(status_code=status_code, detail=str(e))

    return Response(
        content=stl,
        media_type="application/octet-stream",
        headers={"Content-Disposition": 'attachment; filename="qr.stl"'},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
