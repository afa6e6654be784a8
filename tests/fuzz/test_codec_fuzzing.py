"""
Fuzz Tests for the MERGEDv3 Codec

This module contains fuzz tests that throw arbitrary payloads, names
and byte strings at the codec and the name sanitizer using hypothesis.
"""

import pytest
import io
import hypothesis.strategies as st
from hypothesis import given, settings, Verbosity
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'python-core'))

from merger.codec import FormatCodec
from merger.errors import ErrorKind
from merger.sanitizer import FilenameSanitizer, NamePolicy, contains_unsafe_characters
from merger.storage import SizedSource
from merger.strategy import ProcessingStrategy


# Hypothesis strategies for fuzz testing
payloads = st.binary(min_size=1, max_size=2048)
any_bytes = st.binary(min_size=0, max_size=512)
any_names = st.text(min_size=0, max_size=400)
file_names = st.text(min_size=1, max_size=60, alphabet=st.characters(
    whitelist_categories=['L', 'N'],
    whitelist_characters='_-. '
))
strategies = st.sampled_from([ProcessingStrategy.MEMORY, ProcessingStrategy.STREAMING])

VALIDATION_KINDS = {
    ErrorKind.FORMAT_MISMATCH,
    ErrorKind.SIZE_INVALID,
    ErrorKind.NAME_LENGTH_INVALID,
    ErrorKind.STRUCTURE_MISMATCH,
    ErrorKind.ENCODING_INVALID,
}


def make_codec():
    return FormatCodec(buffer_size=97)


class TestCodecFuzzing:
    """Fuzz tests for encode/decode."""

    @given(carrier=payloads, attachment=payloads, name=file_names, strategy=strategies)
    @settings(verbosity=Verbosity.quiet, max_examples=100)
    def test_roundtrip_fuzz(self, carrier, attachment, name, strategy):
        """Fuzz test that decode(encode(x)) restores every component."""
        codec = make_codec()
        sink = io.BytesIO()
        encoded = codec.encode(
            SizedSource.from_bytes(carrier), SizedSource.from_bytes(attachment), name, sink,
            strategy=strategy, name_policy=NamePolicy.LENIENT,
        )
        assert encoded.success
        container = sink.getvalue()
        assert len(container) == len(carrier) + len(attachment) + 4 + encoded.summary.name_length + 24

        decoded = codec.decode(SizedSource.from_bytes(container), strategy=strategy)
        assert decoded.success
        assert decoded.carrier_data == carrier
        assert decoded.attachment_data == attachment
        assert decoded.outputs[1].name == encoded.summary.name

    @given(data=any_bytes)
    @settings(verbosity=Verbosity.quiet, max_examples=200)
    def test_decode_arbitrary_bytes_fuzz(self, data):
        """Fuzz test that arbitrary input yields a result, never an exception."""
        result = make_codec().decode(SizedSource.from_bytes(data))
        if not result.success:
            assert result.error in VALIDATION_KINDS

    @given(data=any_bytes)
    @settings(verbosity=Verbosity.quiet, max_examples=200)
    def test_detect_arbitrary_bytes_fuzz(self, data):
        """Fuzz test that detect only ever answers True or False."""
        found = make_codec().detect(SizedSource.from_bytes(data))
        assert found is (len(data) >= 29 and data.endswith(b"MERGEDv3"))

    @given(carrier=payloads, attachment=payloads, cut=st.integers(min_value=1, max_value=64))
    @settings(verbosity=Verbosity.quiet, max_examples=100)
    def test_truncation_fuzz(self, carrier, attachment, cut):
        """Fuzz test that a truncated container never decodes."""
        codec = make_codec()
        sink = io.BytesIO()
        codec.encode(SizedSource.from_bytes(carrier), SizedSource.from_bytes(attachment), "a.bin", sink)
        truncated = sink.getvalue()[:-cut]

        result = codec.decode(SizedSource.from_bytes(truncated))
        assert result.success is False
        assert result.error in VALIDATION_KINDS


class TestSanitizerFuzzing:
    """Fuzz tests for name sanitization."""

    @given(name=any_names)
    @settings(verbosity=Verbosity.quiet, max_examples=300)
    def test_lenient_output_fuzz(self, name):
        """Fuzz test the invariants of lenient sanitization."""
        result = FilenameSanitizer().sanitize(name)
        encoded = result.encode('utf-8')
        assert 1 <= len(encoded) <= 255
        assert not contains_unsafe_characters(result)
        assert not result.startswith('.')

    @given(name=any_names)
    @settings(verbosity=Verbosity.quiet, max_examples=300)
    def test_sanitize_idempotent_fuzz(self, name):
        """Fuzz test that sanitizing twice changes nothing."""
        sanitizer = FilenameSanitizer()
        once = sanitizer.sanitize(name)
        assert sanitizer.sanitize(once) == once

    @given(name=any_names)
    @settings(verbosity=Verbosity.quiet, max_examples=200)
    def test_strict_matches_lenient_fuzz(self, name):
        """Fuzz test that STRICT either agrees with LENIENT or raises."""
        from merger.errors import MergerError

        sanitizer = FilenameSanitizer()
        try:
            strict = sanitizer.sanitize(name, NamePolicy.STRICT)
        except MergerError as e:
            assert e.kind in (ErrorKind.NAME_EMPTY, ErrorKind.NAME_TOO_LONG)
        else:
            assert strict == sanitizer.sanitize(name, NamePolicy.LENIENT)
