import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

import aiohttp

from basespace.domain.filters import fastq_only, find_paired_fastq, importable
from basespace.domain.models import BasespaceFile, Biosample, Dataset, PairedFASTQ, Project, Sample
from basespace.domain.result import Failure, Result, Success, collect_in_order
from basespace.infrastructure.acl import BaseSpaceTranslator
from basespace.infrastructure.basespace_client import ApiVersion, BaseSpaceClient
from basespace.infrastructure.downloader import StreamingDownloader
from basespace.infrastructure.pagination import ListEndpoint, PagingConvention, Paginator

logger = logging.getLogger(__name__)

# Limit concurrent connections; a project listing fans out one request per page
CONNECTOR_LIMIT = 10


class BaseSpaceService:
    """
    Service composing pagination, decoding and downloads into project, dataset
    and file traversals.

    Use it as an async context manager; it owns the HTTP session shared by all
    of its operations. Every operation returns a Result.
    """

    def __init__(
            self,
            client: BaseSpaceClient,
            paginator: Optional[Paginator] = None,
            downloader: Optional[StreamingDownloader] = None,
            connector_limit: int = CONNECTOR_LIMIT,
    ):
        self.client = client
        self.paginator = paginator or Paginator(client)
        self.downloader = downloader or StreamingDownloader()
        self.connector_limit = connector_limit
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "BaseSpaceService":
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=self.connector_limit),
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("BaseSpaceService must be entered with 'async with' before use.")
        return self._session

    def _v1_list(self, path: str, **params) -> ListEndpoint:
        return ListEndpoint(
            request=self.client.query(ApiVersion.V1, path, params),
            convention=PagingConvention.RESPONSE,
        )

    def _v2_list(self, path: str, **params) -> ListEndpoint:
        return ListEndpoint(
            request=self.client.query(ApiVersion.V2, path, params),
            convention=PagingConvention.PAGING,
        )

    # Listings

    async def projects(self) -> Result[List[Project]]:
        return await self.paginator.fetch_all(
            self.session, self._v1_list("users/current/projects"), BaseSpaceTranslator.to_project
        )

    async def project_biosamples(self, project_id: str) -> Result[List[Biosample]]:
        return await self.paginator.fetch_all(
            self.session, self._v2_list(f"projects/{project_id}/biosamples"), BaseSpaceTranslator.to_biosample
        )

    async def project_datasets(self, project_id: str) -> Result[List[Dataset]]:
        return await self.paginator.fetch_all(
            self.session, self._v2_list(f"projects/{project_id}/datasets"), BaseSpaceTranslator.to_dataset
        )

    async def biosamples(self) -> Result[List[Biosample]]:
        return await self.paginator.fetch_all(
            self.session, self._v2_list("biosamples"), BaseSpaceTranslator.to_biosample
        )

    async def datasets(self) -> Result[List[Dataset]]:
        return await self.paginator.fetch_all(
            self.session, self._v2_list("datasets"), BaseSpaceTranslator.to_dataset
        )

    async def biosample_datasets(self, biosample_id: str) -> Result[List[Dataset]]:
        return await self.paginator.fetch_all(
            self.session,
            self._v2_list("datasets", inputbiosamples=biosample_id),
            BaseSpaceTranslator.to_dataset,
        )

    async def project_samples(self, project_id: str) -> Result[List[Sample]]:
        return await self.paginator.fetch_all(
            self.session, self._v1_list(f"projects/{project_id}/samples"), BaseSpaceTranslator.to_sample
        )

    async def sample_files(self, sample_id: str) -> Result[List[BasespaceFile]]:
        return await self.paginator.fetch_all(
            self.session, self._v1_list(f"samples/{sample_id}/files"), BaseSpaceTranslator.to_file
        )

    async def dataset_files(self, dataset_id: str) -> Result[List[BasespaceFile]]:
        """
        Lists the files of a dataset, each stamped with the dataset name.

        The dataset itself is fetched once, after every file page decoded.
        """
        files = await self.paginator.fetch_all(
            self.session,
            self._v2_list(f"datasets/{dataset_id}/files", filehrefcontentresolution="true"),
            BaseSpaceTranslator.to_file,
        )
        if isinstance(files, Failure):
            return files

        dataset = await self.dataset(dataset_id, stage="enrichment")
        if isinstance(dataset, Failure):
            return dataset

        name = dataset.value.name
        return Success([file.with_dataset_name(name) for file in files.value])

    async def fastq_files(self, dataset_id: str) -> Result[List[BasespaceFile]]:
        files = await self.dataset_files(dataset_id)
        if isinstance(files, Failure):
            return files
        return Success(fastq_only(files.value))

    async def paired_fastq(self, dataset_id: str) -> Result[Optional[PairedFASTQ]]:
        """Success(None) when the dataset holds no complete R1/R2 pair."""
        files = await self.fastq_files(dataset_id)
        if isinstance(files, Failure):
            return files
        return Success(find_paired_fastq(files.value))

    # Importable filtering

    async def importable_datasets(self, project_id: str, max_size: int) -> Result[List[Dataset]]:
        datasets = await self.project_datasets(project_id)
        if isinstance(datasets, Failure):
            return datasets
        return Success(importable(datasets.value, max_size))

    async def importable_projects(self, max_size: int) -> Result[List[Project]]:
        """
        Returns the projects holding at least one importable dataset, each
        carrying its importable dataset count.

        Projects are counted concurrently; the first failure in project order wins.
        """
        projects = await self.projects()
        if isinstance(projects, Failure):
            return projects

        counted = await asyncio.gather(*(
            self.importable_datasets(project.id, max_size) for project in projects.value
        ))
        datasets_per_project = collect_in_order(counted)
        if isinstance(datasets_per_project, Failure):
            return datasets_per_project

        return Success([
            project.with_importable_datasets(len(datasets))
            for project, datasets in zip(projects.value, datasets_per_project.value)
            if datasets
        ])

    # Single resources

    async def project(self, project_id: str) -> Result[Project]:
        return await self.client.fetch_entity(
            self.session,
            self.client.query(ApiVersion.V1, f"projects/{project_id}"),
            BaseSpaceTranslator.to_project,
            root=("Response",),
        )

    async def dataset(self, dataset_id: str, stage: str = "request") -> Result[Dataset]:
        return await self.client.fetch_entity(
            self.session,
            self.client.query(ApiVersion.V2, f"datasets/{dataset_id}"),
            BaseSpaceTranslator.to_dataset,
            stage=stage,
        )

    async def file(self, file_id: str) -> Result[BasespaceFile]:
        return await self.client.fetch_entity(
            self.session,
            self.client.query(ApiVersion.V2, f"files/{file_id}", {"filehrefcontentresolution": "true"}),
            BaseSpaceTranslator.to_file,
        )

    # Content

    async def download_file(self, file_id: str, destination: Union[str, Path]) -> Result[Path]:
        return await self.downloader.download(
            self.session,
            self.client.query(ApiVersion.V1, f"files/{file_id}/content"),
            destination,
        )

    async def is_token_valid(self) -> Result[bool]:
        return await self.client.is_token_valid(self.session)
