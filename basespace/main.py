import asyncio
import os
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv

from basespace.application.basespace_service import BaseSpaceService
from basespace.domain.result import Failure
from basespace.infrastructure.basespace_client import BaseSpaceClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

DEFAULT_MAX_DATASET_SIZE = 10 * 1024 ** 3


async def download_pairs(service: BaseSpaceService, project_id: str, max_size: int, download_dir: Path) -> None:
    datasets = await service.importable_datasets(project_id, max_size)
    if isinstance(datasets, Failure):
        logger.error(f"Could not list datasets of project {project_id}: {datasets.error}")
        return

    for dataset in datasets.value:
        pair = await service.paired_fastq(dataset.id)
        if isinstance(pair, Failure):
            logger.error(f"Could not list files of dataset {dataset.name}: {pair.error}")
            continue
        if pair.value is None:
            logger.info(f"Dataset {dataset.name} has no R1/R2 pair. Skipping.")
            continue

        for file in (pair.value.r1, pair.value.r2):
            result = await service.download_file(file.id, download_dir / file.name)
            if isinstance(result, Failure):
                logger.error(f"Download of {file.name} failed: {result.error}")


def read_max_dataset_size() -> int:
    raw = os.getenv("BASESPACE_MAX_DATASET_SIZE")
    if raw is None:
        return DEFAULT_MAX_DATASET_SIZE

    try:
        max_size = int(raw)
    except ValueError:
        max_size = -1
    if max_size < 0:
        logger.error(f"BASESPACE_MAX_DATASET_SIZE must be a non-negative number of bytes, got {raw!r}.")
        sys.exit(1)
    return max_size


async def main():
    # Load environment variables from .env file
    load_dotenv()

    access_token = os.getenv("BASESPACE_ACCESS_TOKEN")
    max_size = read_max_dataset_size()
    download_dir = os.getenv("BASESPACE_DOWNLOAD_DIR")

    if not access_token:
        logger.error("BASESPACE_ACCESS_TOKEN is not set in the environment.")
        sys.exit(1)

    client = BaseSpaceClient(token=access_token)

    async with BaseSpaceService(client=client) as service:
        valid = await service.is_token_valid()
        if isinstance(valid, Failure):
            logger.error(f"Could not reach BaseSpace: {valid.error}")
            sys.exit(1)
        if not valid.value:
            logger.error("BASESPACE_ACCESS_TOKEN was rejected by BaseSpace.")
            sys.exit(1)

        projects = await service.importable_projects(max_size)
        if isinstance(projects, Failure):
            logger.error(f"Could not list importable projects: {projects.error}")
            sys.exit(1)

        for project in projects.value:
            logger.info(f"{project.name} ({project.id}): {project.importable_datasets} importable dataset(s).")

        if download_dir:
            target = Path(download_dir)
            target.mkdir(parents=True, exist_ok=True)
            for project in projects.value:
                await download_pairs(service, project.id, max_size, target)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user. Exiting gracefully.")


if __name__ == "__main__":
    run()
