from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import MongoClient

from cart import CartEngine
from catalog import ItemCatalog
from database import Database, serialize
from directory import UserDirectory, public_view
from errors import ValidationFailed, register_error_handlers
from logger import configure_logging, get_logger
from schemas import AddToCartRequest, LoginRequest, RegisterRequest
from security import Session, SessionVerifier, TokenSigner, require_session
from settings import Settings

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, client: Optional[MongoClient] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)

    db = Database(settings, client=client)
    signer = TokenSigner(settings)
    catalog = ItemCatalog(db)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.ensure_indexes()
        logger.info("startup complete", app=settings.app_name, env=settings.app_env)
        yield
        db.client.close()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.verifier = SessionVerifier(db.users, signer)
    app.state.directory = UserDirectory(db, signer)
    app.state.catalog = catalog
    app.state.carts = CartEngine(db, catalog, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    _add_routes(app)
    return app


def _add_routes(app: FastAPI) -> None:

    @app.get("/")
    def read_root():
        return {"message": "Ecommerce API ready"}

    @app.get("/test")
    def test_database(request: Request):
        response = {"backend": "Running", "connection_status": "Not Connected"}
        response.update(request.app.state.db.ping())
        if response["database"] == "Connected":
            response["connection_status"] = "Connected"
        return response

    # Users

    @app.post("/users", status_code=status.HTTP_201_CREATED)
    def register(payload: RegisterRequest, request: Request):
        user, token = request.app.state.directory.register(payload.name, payload.email, payload.password)
        return {"user": public_view(user), "token": token}

    @app.post("/users/login")
    def login(payload: LoginRequest, request: Request):
        user, token = request.app.state.directory.login(payload.email, payload.password)
        return {"user": public_view(user), "token": token}

    @app.post("/users/logout")
    def logout(request: Request, session: Session = Depends(require_session)):
        request.app.state.directory.logout(session)
        return Response(status_code=status.HTTP_200_OK)

    @app.post("/users/logoutAll")
    def logout_all(request: Request, session: Session = Depends(require_session)):
        request.app.state.directory.logout_all(session)
        return Response(status_code=status.HTTP_200_OK)

    # Items

    @app.post("/items", status_code=status.HTTP_201_CREATED)
    def create_item(request: Request, payload: Dict[str, Any] = Body(...), session: Session = Depends(require_session)):
        return serialize(request.app.state.catalog.create(session.user_id, payload))

    @app.get("/items")
    def list_items(request: Request) -> List[dict]:
        return [serialize(d) for d in request.app.state.catalog.list_all()]

    @app.get("/items/{item_id}")
    def get_item(item_id: str, request: Request, session: Session = Depends(require_session)):
        return serialize(request.app.state.catalog.get(item_id))

    @app.patch("/items/{item_id}")
    def update_item(item_id: str, request: Request, payload: Dict[str, Any] = Body(...), session: Session = Depends(require_session)):
        return serialize(request.app.state.catalog.update(item_id, payload))

    @app.delete("/items/{item_id}")
    def delete_item(item_id: str, request: Request, session: Session = Depends(require_session)):
        return serialize(request.app.state.catalog.delete(item_id))

    # Cart

    @app.get("/cart")
    def get_cart(request: Request, session: Session = Depends(require_session)):
        return serialize(request.app.state.carts.fetch(session.user_id))

    @app.post("/cart")
    def add_to_cart(payload: AddToCartRequest, request: Request, session: Session = Depends(require_session)):
        cart, created = request.app.state.carts.add_item(session.user_id, payload.item_id, payload.quantity)
        code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
        return JSONResponse(status_code=code, content=serialize(cart))

    @app.delete("/cart")
    def remove_from_cart(request: Request, item_id: Optional[str] = Query(default=None, alias="itemId"), session: Session = Depends(require_session)):
        if not item_id:
            raise ValidationFailed("itemId is required", fields={"itemId": "itemId is required"})
        return serialize(request.app.state.carts.remove_item(session.user_id, item_id))


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
