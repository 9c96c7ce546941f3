from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

# Wire values are taken as sent: a JSON string is never read as a number, a
# boolean never as an integer. Timestamps stay lax so ISO strings parse.


class Project(BaseModel):
    """
    Immutable domain model representing a BaseSpace project.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., strict=True, description="BaseSpace project ID")
    name: str = Field(..., strict=True, description="Title of the project")
    description: str = Field(..., strict=True, description="Free-text project description")
    date_created: datetime = Field(..., description="Creation timestamp")
    importable_datasets: Optional[int] = Field(
        default=None,
        ge=0,
        strict=True,
        description="Number of importable datasets, filled in after counting them"
    )

    def with_importable_datasets(self, count: int) -> "Project":
        """Returns a copy of the project carrying the importable dataset count."""
        return self.model_copy(update={"importable_datasets": count})


class Sample(BaseModel):
    """A v1 sample; its ID is the one v1 sample file listings expect."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., strict=True, description="BaseSpace v1 sample ID")
    name: str = Field(..., strict=True, description="Name of the sample")
    url: str = Field(..., strict=True, description="Resource URL of the sample")


class Biosample(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., strict=True, description="BaseSpace biosample ID")
    name: str = Field(..., strict=True, description="Name of the biosample")
    url: str = Field(..., strict=True, description="Resource URL of the biosample")
    project_id: str = Field(..., strict=True, description="ID of the owning (default) project")


class Dataset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., strict=True, description="BaseSpace dataset ID")
    name: str = Field(..., strict=True, description="Name of the dataset")
    date_created: datetime = Field(..., description="Creation timestamp")
    project_name: str = Field(..., strict=True, description="Name of the owning project")
    dataset_type: str = Field(..., strict=True, description="Dataset type tag, e.g. 'illumina.fastq.v1.8'")
    size: int = Field(..., ge=0, strict=True, description="Total size in bytes")


class BasespaceFile(BaseModel):
    """
    Immutable domain model representing a single file stored in BaseSpace.

    ``dataset_name`` is absent when the file comes from a raw listing and is
    attached afterwards by whoever knows the owning dataset.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., strict=True, description="BaseSpace file ID")
    name: str = Field(..., strict=True, description="File name")
    url: str = Field(..., strict=True, description="URL of the file content")
    date_created: datetime = Field(..., description="Creation timestamp")
    size: int = Field(..., ge=0, strict=True, description="Size in bytes")
    dataset_name: Optional[str] = Field(default=None, strict=True, description="Name of the owning dataset")

    def with_dataset_name(self, dataset_name: str) -> "BasespaceFile":
        """Returns a copy of the file stamped with its dataset name."""
        return self.model_copy(update={"dataset_name": dataset_name})


class PairedFASTQ(BaseModel):
    """Forward (R1) and reverse (R2) read files of one sequencing run."""
    model_config = ConfigDict(frozen=True)

    r1: BasespaceFile
    r2: BasespaceFile
