import uvicorn

from app import create_app
from app.core.config import settings

app = create_app()


@app.get("/api/endpoints", include_in_schema=False)
def list_endpoints():
    endpoints = []
    for route in app.router.routes:
        endpoints.append({
            "path": route.path,
            "name": route.name,
            "methods": sorted(getattr(route, "methods", None) or [])
        })
    return {"endpoints": endpoints}


if __name__ == "__main__":
    uvicorn.run("app.run:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
