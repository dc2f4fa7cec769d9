from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, Response

from animelist.api.deps import RequestContext, get_asset_storage, require_user
from animelist.core.errors import NotFoundOrForbidden, ValidationError
from animelist.schemas.anime import AnimeEntryInput
from animelist.schemas.common import parse_input
from animelist.services import anime as anime_service
from animelist.services.storage import AssetStorage
from animelist.web.templating import redirect, render

router = APIRouter()


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, context: RequestContext = Depends(require_user)) -> HTMLResponse:
    entries = anime_service.list_entries(context.db, context.user_id)
    return render(request, "dashboard.html", current_user=context.user, entries=entries)


@router.post("/anime/add")
def add_anime(
    title: str = Form(""),
    rating: str = Form(""),
    episodes: str = Form(""),
    genre: str = Form(""),
    image: UploadFile | None = File(None),
    context: RequestContext = Depends(require_user),
    storage: AssetStorage = Depends(get_asset_storage),
) -> Response:
    try:
        fields = parse_input(AnimeEntryInput, title=title, rating=rating, episodes=episodes, genre=genre)
        image_path = storage.save(image)
    except ValidationError as exc:
        return redirect("/dashboard", error=exc.detail)

    anime_service.add_entry(context.db, context.user_id, fields, image_path=image_path, storage=storage)
    return redirect("/dashboard", success="Anime added")


@router.get("/anime/edit/{entry_id}", response_class=HTMLResponse)
def edit_anime(
    request: Request,
    entry_id: int,
    context: RequestContext = Depends(require_user),
) -> Response:
    try:
        entry = anime_service.get_entry(context.db, context.user_id, entry_id)
    except NotFoundOrForbidden:
        return redirect("/dashboard")
    return render(request, "edit.html", current_user=context.user, entry=entry)


@router.post("/anime/update/{entry_id}")
def update_anime(
    entry_id: int,
    title: str = Form(""),
    rating: str = Form(""),
    episodes: str = Form(""),
    genre: str = Form(""),
    remove_image: str | None = Form(None),
    image: UploadFile | None = File(None),
    context: RequestContext = Depends(require_user),
    storage: AssetStorage = Depends(get_asset_storage),
) -> Response:
    try:
        fields = parse_input(AnimeEntryInput, title=title, rating=rating, episodes=episodes, genre=genre)
        image_path = storage.save(image)
    except ValidationError as exc:
        return redirect(f"/anime/edit/{entry_id}", error=exc.detail)

    try:
        anime_service.update_entry(
            context.db,
            context.user_id,
            entry_id,
            fields,
            storage,
            image_path=image_path,
            remove_image=bool(remove_image),
        )
    except NotFoundOrForbidden as exc:
        return redirect("/dashboard", error=exc.detail)
    return redirect("/dashboard", success="Anime updated")


@router.post("/anime/delete/{entry_id}")
def delete_anime(
    entry_id: int,
    context: RequestContext = Depends(require_user),
    storage: AssetStorage = Depends(get_asset_storage),
) -> Response:
    try:
        anime_service.delete_entry(context.db, context.user_id, entry_id, storage)
    except NotFoundOrForbidden as exc:
        return redirect("/dashboard", error=exc.detail)
    return redirect("/dashboard", success="Anime deleted")
