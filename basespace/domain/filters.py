from fnmatch import fnmatchcase
from typing import FrozenSet, Iterable, List, Optional

from basespace.domain.models import BasespaceFile, Dataset, PairedFASTQ

# Datasets of these types hold unprocessed uploads and are never imported
RAW_FILES_DATASET_TYPES: FrozenSet[str] = frozenset({"common.files"})

FASTQ_PATTERN = "*.fastq.gz"
R1_SUFFIX = "R1_001.fastq.gz"
R2_SUFFIX = "R2_001.fastq.gz"


def is_importable(dataset: Dataset, max_size: int) -> bool:
    return dataset.dataset_type not in RAW_FILES_DATASET_TYPES and dataset.size <= max_size


def importable(datasets: Iterable[Dataset], max_size: int) -> List[Dataset]:
    return [dataset for dataset in datasets if is_importable(dataset, max_size)]


def is_fastq(file: BasespaceFile) -> bool:
    return fnmatchcase(file.name, FASTQ_PATTERN)


def fastq_only(files: Iterable[BasespaceFile]) -> List[BasespaceFile]:
    return [file for file in files if is_fastq(file)]


def paired_fastqs(files: Iterable[BasespaceFile]) -> List[PairedFASTQ]:
    """
    Matches every ``*R1_001.fastq.gz`` file with the file whose name has the
    suffix replaced by ``R2_001.fastq.gz``.

    R1 files without an exact R2 name match produce no pair.
    """
    files = list(files)
    by_name = {file.name: file for file in files}
    pairs = []
    for file in files:
        if not file.name.endswith(R1_SUFFIX):
            continue
        mate_name = file.name[: -len(R1_SUFFIX)] + R2_SUFFIX
        mate = by_name.get(mate_name)
        if mate is not None:
            pairs.append(PairedFASTQ(r1=file, r2=mate))
    return pairs


def find_paired_fastq(files: Iterable[BasespaceFile]) -> Optional[PairedFASTQ]:
    """Returns the first R1/R2 pair among ``files``, or None."""
    pairs = paired_fastqs(files)
    return pairs[0] if pairs else None
