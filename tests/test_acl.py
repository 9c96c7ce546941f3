import unittest
from datetime import datetime, timezone

from basespace.domain.exceptions import DecodingError
from basespace.domain.models import BasespaceFile, Biosample, Dataset, Project, Sample
from basespace.infrastructure.acl import BaseSpaceTranslator, extract

CREATED = datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)


class TestBaseSpaceTranslator(unittest.TestCase):
    def test_to_dataset_reads_nested_fields(self) -> None:
        raw_node = {
            "Id": "ds.1",
            "Name": "Sample-1_L001",
            "DateCreated": "2024-01-02T03:04:05.1234567Z",
            "Project": {"Id": "42", "Name": "Run 7"},
            "DatasetType": {"Id": "illumina.fastq.v1.8", "Name": "FASTQ"},
            "TotalSize": 2048,
        }

        dataset = BaseSpaceTranslator.to_dataset(raw_node)

        self.assertEqual(dataset.project_name, "Run 7")
        self.assertEqual(dataset.dataset_type, "illumina.fastq.v1.8")
        self.assertEqual(dataset.size, 2048)
        self.assertEqual(dataset.date_created, CREATED)

    def test_to_biosample_reads_default_project(self) -> None:
        raw_node = {
            "Id": "bs.1",
            "Href": "https://api.basespace.illumina.com/v2/biosamples/bs.1",
            "BioSampleName": "Patient-3",
            "DefaultProject": {"Id": "42"},
        }

        biosample = BaseSpaceTranslator.to_biosample(raw_node)

        self.assertEqual(biosample.name, "Patient-3")
        self.assertEqual(biosample.project_id, "42")

    def test_optional_fields_absent_or_null_are_none(self) -> None:
        raw_project = {
            "Id": "42",
            "Name": "Run 7",
            "Description": "",
            "DateCreated": "2024-01-02T03:04:05Z",
        }
        raw_file = {
            "Id": "f.1",
            "Name": "S1_R1_001.fastq.gz",
            "HrefContent": "https://example.org/f.1",
            "DateCreated": "2024-01-02T03:04:05Z",
            "Size": 10,
            "DatasetName": None,
        }

        self.assertIsNone(BaseSpaceTranslator.to_project(raw_project).importable_datasets)
        self.assertIsNone(BaseSpaceTranslator.to_file(raw_file).dataset_name)

    def test_missing_required_field_reports_path(self) -> None:
        raw_node = {
            "Id": "bs.1",
            "Href": "https://example.org/bs.1",
            "BioSampleName": "Patient-3",
            "DefaultProject": {},
        }

        with self.assertRaises(DecodingError) as ctx:
            BaseSpaceTranslator.to_biosample(raw_node)

        self.assertEqual(ctx.exception.path, "DefaultProject/Id")
        self.assertEqual(ctx.exception.reason, "missing field")

    def test_null_required_field_is_rejected(self) -> None:
        raw_node = {
            "Id": "42",
            "Name": None,
            "Description": "",
            "DateCreated": "2024-01-02T03:04:05Z",
        }

        with self.assertRaises(DecodingError) as ctx:
            BaseSpaceTranslator.to_project(raw_node)

        self.assertEqual(ctx.exception.path, "Name")

    def test_wrong_type_reports_wire_path(self) -> None:
        raw_node = {
            "Id": "f.1",
            "Name": "reads.fastq.gz",
            "HrefContent": "https://example.org/f.1",
            "DateCreated": "2024-01-02T03:04:05Z",
            "Size": "large",
        }

        with self.assertRaises(DecodingError) as ctx:
            BaseSpaceTranslator.to_file(raw_node)

        self.assertEqual(ctx.exception.path, "Size")

    def test_negative_size_is_out_of_range(self) -> None:
        raw_node = {
            "Id": "f.1",
            "Name": "reads.fastq.gz",
            "HrefContent": "https://example.org/f.1",
            "DateCreated": "2024-01-02T03:04:05Z",
            "Size": -1,
        }

        with self.assertRaises(DecodingError) as ctx:
            BaseSpaceTranslator.to_file(raw_node)

        self.assertEqual(ctx.exception.path, "Size")

    def test_wire_types_are_not_coerced(self) -> None:
        raw_file = {
            "Id": "f.1",
            "Name": "reads.fastq.gz",
            "HrefContent": "https://example.org/f.1",
            "DateCreated": "2024-01-02T03:04:05Z",
            "Size": 10,
        }

        for size in (True, "123", 10.0):
            with self.subTest(size=size):
                with self.assertRaises(DecodingError) as ctx:
                    BaseSpaceTranslator.to_file({**raw_file, "Size": size})
                self.assertEqual(ctx.exception.path, "Size")

        with self.assertRaises(DecodingError) as ctx:
            BaseSpaceTranslator.to_file({**raw_file, "Id": 7})
        self.assertEqual(ctx.exception.path, "Id")

    def test_boolean_total_size_is_rejected(self) -> None:
        raw_node = {
            "Id": "ds.1",
            "Name": "Sample-1",
            "DateCreated": "2024-01-02T03:04:05Z",
            "Project": {"Name": "Run 7"},
            "DatasetType": {"Id": "illumina.fastq.v1.8"},
            "TotalSize": False,
        }

        with self.assertRaises(DecodingError) as ctx:
            BaseSpaceTranslator.to_dataset(raw_node)

        self.assertEqual(ctx.exception.path, "TotalSize")

    def test_numeric_string_importable_count_is_rejected(self) -> None:
        raw_node = {
            "Id": "42",
            "Name": "Run 7",
            "Description": "",
            "DateCreated": "2024-01-02T03:04:05Z",
            "ImportableDatasets": "3",
        }

        with self.assertRaises(DecodingError) as ctx:
            BaseSpaceTranslator.to_project(raw_node)

        self.assertEqual(ctx.exception.path, "ImportableDatasets")

    def test_to_sample_reads_v1_fields(self) -> None:
        sample = BaseSpaceTranslator.to_sample({"Id": "s.1", "Name": "Patient-3", "Href": "v1pre3/samples/s.1"})

        self.assertEqual(sample, Sample(id="s.1", name="Patient-3", url="v1pre3/samples/s.1"))

    def test_non_object_payload_is_rejected(self) -> None:
        with self.assertRaises(DecodingError):
            BaseSpaceTranslator.to_project(["not", "an", "object"])

    def test_round_trip_every_entity(self) -> None:
        entities = [
            Project(id="42", name="Run 7", description="desc", date_created=CREATED),
            Project(id="43", name="Run 8", description="", date_created=CREATED, importable_datasets=3),
            Sample(id="s.1", name="Patient-3", url="https://example.org/s.1"),
            Biosample(id="bs.1", name="Patient-3", url="https://example.org/bs.1", project_id="42"),
            Dataset(
                id="ds.1", name="Sample-1", date_created=CREATED,
                project_name="Run 7", dataset_type="common.files", size=0,
            ),
            BasespaceFile(
                id="f.1", name="S1_R1_001.fastq.gz", url="https://example.org/f.1",
                date_created=CREATED, size=10,
            ),
            BasespaceFile(
                id="f.2", name="S1_R2_001.fastq.gz", url="https://example.org/f.2",
                date_created=CREATED, size=10, dataset_name="Sample-1",
            ),
        ]

        for entity in entities:
            with self.subTest(entity=entity):
                wire = BaseSpaceTranslator.to_wire(entity)
                decoded = BaseSpaceTranslator.decode(type(entity), wire)
                self.assertEqual(decoded, entity)

    def test_to_wire_nests_paths(self) -> None:
        biosample = Biosample(id="bs.1", name="P", url="u", project_id="42")

        self.assertEqual(
            BaseSpaceTranslator.to_wire(biosample),
            {"Id": "bs.1", "Href": "u", "BioSampleName": "P", "DefaultProject": {"Id": "42"}},
        )


class TestExtract(unittest.TestCase):
    def test_extract_walks_nested_objects(self) -> None:
        self.assertEqual(extract({"Response": {"TotalCount": 3}}, ("Response", "TotalCount")), 3)

    def test_extract_empty_path_returns_payload(self) -> None:
        payload = {"Id": "1"}
        self.assertIs(extract(payload, ()), payload)

    def test_extract_reports_missing_segment(self) -> None:
        with self.assertRaises(DecodingError) as ctx:
            extract({"Response": {}}, ("Response", "TotalCount"))

        self.assertEqual(ctx.exception.path, "Response/TotalCount")

    def test_extract_reports_non_object_parent(self) -> None:
        with self.assertRaises(DecodingError) as ctx:
            extract({"Response": []}, ("Response", "Items"))

        self.assertEqual(ctx.exception.path, "Response")
        self.assertEqual(ctx.exception.reason, "expected an object")
