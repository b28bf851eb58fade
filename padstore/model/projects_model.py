"""
Snapshots of workspace contents returned by scans and change analysis.

These are derived, disposable views of the filesystem and are never persisted by
padstore itself. They serialize with camelCase keys (`lastModifiedMs`,
`parentPhysicalFolder`, ...) for the app layer.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from padstore.model.file_kinds import ProjectKind


class DtoModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Project(DtoModel):
    """
    One document-bearing file in the workspace.
    """

    id: str
    kind: ProjectKind
    name: str
    path: str
    ext: Optional[str] = None
    title: Optional[str] = None
    last_modified_ms: int
    size: int
    parent_physical_folder: Optional[str] = None


class PhysicalFolder(DtoModel):
    """
    A directory that is a direct child of the workspace root.
    """

    path: str
    name: str


class SkippedItem(DtoModel):
    """
    An entry that could not be read and was left out of a result.
    """

    path: str
    reason: str


class ScanResult(DtoModel):
    root_projects: List[Project] = Field(default_factory=list)
    physical_folders: List[Tuple[PhysicalFolder, List[Project]]] = Field(default_factory=list)
    skipped: List[SkippedItem] = Field(default_factory=list)

    def all_projects(self) -> List[Project]:
        projects = list(self.root_projects)
        for _folder, items in self.physical_folders:
            projects.extend(items)
        return projects


class AnalyzeResult(DtoModel):
    projects: List[Project] = Field(default_factory=list)
    delete_project_paths: List[str] = Field(default_factory=list)
    physical_folders: List[PhysicalFolder] = Field(default_factory=list)
    delete_physical_folders: List[str] = Field(default_factory=list)
    skipped: List[SkippedItem] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.projects
            or self.delete_project_paths
            or self.physical_folders
            or self.delete_physical_folders
        )


## Tests


def test_project_camel_case():
    project = Project(
        id="abc",
        kind=ProjectKind.txt,
        name="b",
        path="/ws/Notes/b.txt",
        ext="txt",
        last_modified_ms=1700000000000,
        size=3,
        parent_physical_folder="/ws/Notes",
    )
    data = project.to_json_dict()
    assert data["kind"] == "txt"
    assert data["lastModifiedMs"] == 1700000000000
    assert data["parentPhysicalFolder"] == "/ws/Notes"
    assert data["title"] is None

    assert Project.model_validate(data) == project


def test_scan_result_json():
    folder = PhysicalFolder(path="/ws/Notes", name="Notes")
    scan = ScanResult(physical_folders=[(folder, [])])
    data = scan.to_json_dict()
    assert data["rootProjects"] == []
    assert data["physicalFolders"] == [[{"path": "/ws/Notes", "name": "Notes"}, []]]
    assert scan.all_projects() == []
