"""
Unit Tests for the Merged File Processor

This module tests file-level merge and split: output naming, atomic
commits, overwrite protection, cancellation cleanup and the async
wrappers.
"""

import pytest
import os
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'python-core'))


def leftovers(directory):
    """Temporary files left behind in `directory`."""
    return [name for name in os.listdir(directory) if name.startswith(".merge_")]


class TestMerge:
    """Test cases for MergedFileProcessor.merge_files."""

    @pytest.fixture
    def processor(self):
        """Create processor instance."""
        from merger.processor import MergedFileProcessor
        return MergedFileProcessor()

    def test_merge_default_output(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test merging next to the carrier."""
        from merger.errors import OutputRole

        result = processor.merge_files(str(sample_carrier), str(sample_attachment))

        assert result.success is True
        expected = tmp_path / "video_merged_v3.mp4"
        assert expected.exists()
        assert expected.stat().st_size == 188
        assert expected.read_bytes()[-8:] == b"MERGEDv3"
        assert result.outputs[0].location == str(expected)
        assert result.outputs[0].role == OutputRole.CONTAINER
        assert leftovers(tmp_path) == []

    def test_merge_explicit_output_and_name(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test an explicit output path and stored name."""
        output = tmp_path / "nested" / "out.mp4"
        result = processor.merge_files(
            str(sample_carrier), str(sample_attachment), str(output), attachment_name="renamed.txt"
        )
        assert result.success
        assert output.exists()
        assert result.summary.name == "renamed.txt"

    def test_merge_refuses_existing_output(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test OUTPUT_EXISTS without overwrite."""
        from merger.errors import ErrorKind

        assert processor.merge_files(str(sample_carrier), str(sample_attachment)).success
        result = processor.merge_files(str(sample_carrier), str(sample_attachment))

        assert result.success is False
        assert result.error == ErrorKind.OUTPUT_EXISTS
        assert leftovers(tmp_path) == []

    def test_merge_overwrite(self, sample_carrier, sample_attachment, tmp_path):
        """Test that overwrite replaces an existing output."""
        from merger.config import MergerConfig
        from merger.processor import MergedFileProcessor

        output = tmp_path / "video_merged_v3.mp4"
        output.write_bytes(b"old")
        processor = MergedFileProcessor(MergerConfig.from_dict({'overwrite': True}))

        assert processor.merge_files(str(sample_carrier), str(sample_attachment)).success
        assert output.stat().st_size == 188

    def test_merge_onto_input(self, processor, sample_carrier, sample_attachment):
        """Test that an input file is never used as the output."""
        from merger.errors import ErrorKind
        result = processor.merge_files(str(sample_carrier), str(sample_attachment), str(sample_carrier))
        assert result.error == ErrorKind.OUTPUT_EXISTS
        assert sample_carrier.read_bytes() == b"\xaa" * 100

    def test_merge_explicit_name_too_long(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test that an explicit 256-byte name is rejected, not truncated."""
        from merger.errors import ErrorKind

        output = tmp_path / "out.mp4"
        result = processor.merge_files(
            str(sample_carrier), str(sample_attachment), str(output), attachment_name="n" * 256
        )

        assert result.success is False
        assert result.error == ErrorKind.NAME_TOO_LONG
        assert not output.exists()
        assert leftovers(tmp_path) == []

    def test_merge_explicit_name_at_limit(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test that an explicit 255-byte name is stored unchanged."""
        output = tmp_path / "out.mp4"
        result = processor.merge_files(
            str(sample_carrier), str(sample_attachment), str(output), attachment_name="n" * 255
        )
        assert result.success
        assert result.summary.name == "n" * 255

    def test_merge_missing_input(self, processor, sample_carrier, tmp_path):
        """Test NOT_FOUND for a missing attachment."""
        from merger.errors import ErrorKind
        result = processor.merge_files(str(sample_carrier), str(tmp_path / "missing.txt"))
        assert result.error == ErrorKind.NOT_FOUND

    def test_merge_directory_input(self, processor, sample_carrier, tmp_path):
        """Test UNREADABLE for a directory."""
        from merger.errors import ErrorKind
        folder = tmp_path / "folder"
        folder.mkdir()
        result = processor.merge_files(str(sample_carrier), str(folder))
        assert result.error == ErrorKind.UNREADABLE

    def test_merge_cancelled_leaves_nothing(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test that cancellation removes the partial output."""
        from merger.errors import ErrorKind
        from merger.transfer import CancellationToken

        token = CancellationToken()
        token.cancel()
        result = processor.merge_files(str(sample_carrier), str(sample_attachment), cancel_token=token)

        assert result.error == ErrorKind.CANCELLED
        assert not (tmp_path / "video_merged_v3.mp4").exists()
        assert leftovers(tmp_path) == []

    def test_merge_progress(self, processor, sample_carrier, sample_attachment):
        """Test that the last progress event reports the saved output."""
        events = []
        processor.merge_files(str(sample_carrier), str(sample_attachment), progress=events.append)
        assert events[-1].fraction == 1.0
        assert events[-1].phase == "Saved"
        assert all(event.fraction <= 1.0 for event in events)


class TestSplit:
    """Test cases for MergedFileProcessor.split_file."""

    @pytest.fixture
    def processor(self):
        """Create processor instance."""
        from merger.processor import MergedFileProcessor
        return MergedFileProcessor()

    @pytest.fixture
    def container(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Create a container on disk."""
        result = processor.merge_files(str(sample_carrier), str(sample_attachment))
        assert result.success
        return tmp_path / "video_merged_v3.mp4"

    def test_split_restores_both_files(self, processor, container, tmp_path):
        """Test a full split."""
        out = tmp_path / "out"
        result = processor.split_file(str(container), str(out))

        assert result.success is True
        assert (out / "video.mp4").read_bytes() == b"\xaa" * 100
        assert (out / "secret.txt").read_bytes() == b"\xbb" * 50
        assert [output.location for output in result.outputs] == [
            str(out / "video.mp4"),
            str(out / "secret.txt"),
        ]
        assert leftovers(out) == []

    def test_split_default_directory(self, processor, container, tmp_path, monkeypatch):
        """Test the configured default output directory."""
        monkeypatch.chdir(tmp_path)
        result = processor.split_file(str(container))
        assert result.success
        assert (tmp_path / "extracted_v3" / "secret.txt").exists()

    def test_split_name_collision(self, processor, tmp_path):
        """Test that a carrier named like the attachment gets a suffix."""
        carrier = tmp_path / "secret.txt"
        carrier.write_bytes(b"c" * 40)
        attachment = tmp_path / "payload" / "secret.txt"
        attachment.parent.mkdir()
        attachment.write_bytes(b"a" * 40)
        assert processor.merge_files(str(carrier), str(attachment)).success

        out = tmp_path / "out"
        result = processor.split_file(str(tmp_path / "secret_merged_v3.txt"), str(out))

        assert result.success
        assert (out / "secret_carrier.txt").read_bytes() == b"c" * 40
        assert (out / "secret.txt").read_bytes() == b"a" * 40

    @pytest.mark.parametrize("stored,written", [
        (".bashrc", "bashrc"),
        ("a<b>|c?.txt", "a_b__c_.txt"),
        ("..", "unknown_file.bin"),
    ])
    def test_split_cleans_stored_name(self, processor, tmp_path, stored, written):
        """Test that a hand-built trailer name is cleaned before writing."""
        from merger.format import Trailer

        container = tmp_path / "x_merged_v3.mp4"
        container.write_bytes(b"c" * 10 + b"a" * 5 + Trailer(stored.encode('utf-8'), 10, 5).to_bytes())

        out = tmp_path / "out"
        result = processor.split_file(str(container), str(out))

        assert result.success
        assert sorted(os.listdir(out)) == sorted(["x.mp4", written])
        assert (out / written).read_bytes() == b"a" * 5
        assert result.outputs[1].name == written

    def test_split_invalid_container(self, processor, sample_binary_data, tmp_path):
        """Test that an ordinary file fails with debug information."""
        from merger.errors import ErrorKind

        out = tmp_path / "out"
        result = processor.split_file(str(sample_binary_data), str(out))

        assert result.error == ErrorKind.FORMAT_MISMATCH
        assert result.debug_info is not None
        assert not result.debug_info.valid
        assert not out.exists()

    def test_split_existing_output(self, processor, container, tmp_path):
        """Test that an existing output aborts the split without side effects."""
        from merger.errors import ErrorKind

        out = tmp_path / "out"
        out.mkdir()
        (out / "secret.txt").write_bytes(b"keep me")

        result = processor.split_file(str(container), str(out))

        assert result.error == ErrorKind.OUTPUT_EXISTS
        assert sorted(os.listdir(out)) == ["secret.txt"]
        assert (out / "secret.txt").read_bytes() == b"keep me"

    def test_split_cancelled(self, processor, container, tmp_path):
        """Test that a cancelled split leaves no files."""
        from merger.errors import ErrorKind
        from merger.transfer import CancellationToken

        token = CancellationToken()
        token.cancel()
        out = tmp_path / "out"
        result = processor.split_file(str(container), str(out), cancel_token=token)

        assert result.error == ErrorKind.CANCELLED
        assert os.listdir(out) == []


class TestDetection:
    """Test cases for detection helpers."""

    @pytest.fixture
    def processor(self):
        """Create processor instance."""
        from merger.processor import MergedFileProcessor
        return MergedFileProcessor()

    def test_detect_and_suggest(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test detect_file and suggest_operation."""
        processor.merge_files(str(sample_carrier), str(sample_attachment))
        container = tmp_path / "video_merged_v3.mp4"

        assert processor.detect_file(str(container)) is True
        assert processor.detect_file(str(sample_carrier)) is False
        assert processor.detect_file(str(tmp_path / "missing.mp4")) is False
        assert processor.suggest_operation(str(container)) == "split"
        assert processor.suggest_operation(str(sample_carrier)) == "merge"

    def test_inspect_file(self, processor, sample_carrier, sample_attachment, tmp_path):
        """Test inspect_file on a container and a missing path."""
        processor.merge_files(str(sample_carrier), str(sample_attachment))

        info = processor.inspect_file(str(tmp_path / "video_merged_v3.mp4"))
        assert info.valid
        assert info.carrier_size == 100
        assert info.attachment_size == 50

        info = processor.inspect_file(str(tmp_path / "missing.mp4"))
        assert not info.valid


class TestAsync:
    """Test cases for the async wrappers."""

    @pytest.mark.asyncio
    async def test_async_roundtrip(self, sample_carrier, sample_attachment, tmp_path):
        """Test merge and split on a worker thread."""
        from merger.processor import MergedFileProcessor

        processor = MergedFileProcessor()
        merged = await processor.merge_files_async(str(sample_carrier), str(sample_attachment))
        assert merged.success

        split = await processor.split_file_async(merged.outputs[0].location, str(tmp_path / "out"))
        assert split.success
        assert (tmp_path / "out" / "secret.txt").read_bytes() == b"\xbb" * 50
