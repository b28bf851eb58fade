from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Request
from pydantic import Field

from padstore import api
from padstore.config.logger import get_logger
from padstore.model.projects_model import DtoModel
from padstore.util.format_utils import path_str
from padstore.watch.change_feed import ChangeFeed

log = get_logger(__name__)


router = APIRouter()


class Route(str, Enum):
    scan_workspace = "/scan_workspace"
    analyze_paths = "/analyze_paths"
    rename_project = "/rename_project"
    delete_project = "/delete_project"
    move_project = "/move_project"
    rename_physical_folder = "/rename_physical_folder"
    delete_physical_folder = "/delete_physical_folder"
    create_physical_folder = "/create_physical_folder"
    watch_physical_folders = "/watch_physical_folders"
    stop_watching = "/stop_watching"
    read_rpad_data = "/read_rpad_data"
    write_rpad_html = "/write_rpad_html"
    write_text_atomic = "/write_text_atomic"
    import_project = "/import_project"
    create_rpad_project = "/create_rpad_project"
    fs_changes = "/fs_changes"


# Request bodies. Keys are camelCase on the wire (`oldPath`, `destDir`, ...).


class RootRequest(DtoModel):
    root: str


class AnalyzeRequest(DtoModel):
    root: str
    paths: List[str]


class RenameProjectRequest(DtoModel):
    root: str
    old_path: str
    new_name: str


class PathRequest(DtoModel):
    root: str
    path: str


class MoveProjectRequest(DtoModel):
    root: str
    old_path: str
    dest_dir: str


class RenameFolderRequest(DtoModel):
    root: str
    path: str
    new_name: str


class CreateFolderRequest(DtoModel):
    root: str
    name: str


class WatchRequest(DtoModel):
    folders: List[str]


class ReadRpadRequest(DtoModel):
    path: str


class WriteRpadRequest(DtoModel):
    path: str
    html: str
    title: Optional[str] = None


class WriteTextRequest(DtoModel):
    path: str
    contents: str


class ImportRequest(DtoModel):
    root: str
    src: str
    # Named `copy` on the wire. As a field name it would shadow `BaseModel.copy`.
    copy_file: bool = Field(default=False, alias="copy")


class CreateRpadRequest(DtoModel):
    dest_dir: str
    name: str


def change_feed(request: Request) -> ChangeFeed:
    return request.app.state.change_feed


@router.post(Route.scan_workspace)
def scan_workspace(body: RootRequest):
    return api.scan_workspace(body.root).to_json_dict()


@router.post(Route.analyze_paths)
def analyze_paths(body: AnalyzeRequest):
    return api.analyze_paths(body.root, body.paths).to_json_dict()


@router.post(Route.rename_project)
def rename_project(body: RenameProjectRequest) -> str:
    return api.rename_project(body.root, body.old_path, body.new_name)


@router.post(Route.delete_project)
def delete_project(body: PathRequest) -> None:
    api.delete_project(body.root, body.path)


@router.post(Route.move_project)
def move_project(body: MoveProjectRequest) -> str:
    return api.move_project(body.root, body.old_path, body.dest_dir)


@router.post(Route.rename_physical_folder)
def rename_physical_folder(body: RenameFolderRequest) -> str:
    return api.rename_physical_folder(body.root, body.path, body.new_name)


@router.post(Route.delete_physical_folder)
def delete_physical_folder(body: PathRequest) -> None:
    api.delete_physical_folder(body.root, body.path)


@router.post(Route.create_physical_folder)
def create_physical_folder(body: CreateFolderRequest) -> str:
    return api.create_physical_folder(body.root, body.name)


@router.post(Route.watch_physical_folders)
def watch_physical_folders(request: Request, body: WatchRequest) -> List[str]:
    return change_feed(request).watch(body.folders)


@router.post(Route.stop_watching)
def stop_watching(request: Request) -> None:
    change_feed(request).stop()


@router.post(Route.read_rpad_data)
def read_rpad_data(body: ReadRpadRequest) -> str:
    return api.read_rpad_data(body.path)


@router.post(Route.write_rpad_html)
def write_rpad_html(body: WriteRpadRequest) -> None:
    api.write_rpad_html(body.path, body.html, body.title)


@router.post(Route.write_text_atomic)
def write_text_atomic(body: WriteTextRequest) -> None:
    api.write_text_atomic(body.path, body.contents)


@router.post(Route.import_project)
def import_project(body: ImportRequest) -> str:
    return api.import_project(body.root, body.src, body.copy_file)


@router.post(Route.create_rpad_project)
def create_rpad_project(body: CreateRpadRequest) -> str:
    return api.create_rpad_project(body.dest_dir, body.name)


@router.get(Route.fs_changes)
def fs_changes(request: Request, flush: bool = False) -> List[List[str]]:
    """
    Changed-path batches since the last call, oldest first.
    """
    batches = change_feed(request).drain(flush=flush)
    return [[path_str(path) for path in batch] for batch in batches]
