"""
Unit tests for header specification tables.

Tests:
- Revision code resolution
- Bundled Rev 0 / Rev 1 / Rev 2 / Rev 2.1 tables
- Patch merging (additive fields, keyed overrides)
- Registry caching and malformed documents
"""

import json
import pytest
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.errors import SpecConfigError
from models.header_spec import (
    FormatSpecRegistry,
    HeaderFieldSpec,
    SpecRevision,
    get_binary_header_spec,
    get_trace_header_spec,
    merge_spec,
    resolve_revision,
)


def _field(key, start, end, data_type='int16'):
    return {
        'name': key.replace('_', ' ').title(),
        'field_key': key,
        'byte_start': start,
        'byte_end': end,
        'data_type': data_type,
        'description': '',
        'required': False,
    }


class TestRevisionResolution:
    """Tests for mapping binary header revision codes to spec revisions."""

    @pytest.mark.parametrize("code,expected", [
        (0x0000, SpecRevision.REV0),
        (0x0001, SpecRevision.REV1),
        (0x0002, SpecRevision.REV2),
        (0x0005, SpecRevision.REV0),
        (0x0100, SpecRevision.REV1),
        (0x0101, SpecRevision.REV1),
        (0x0200, SpecRevision.REV2),
        (0x0201, SpecRevision.REV2_1),
        (0x0202, SpecRevision.REV2),
        (0x0300, SpecRevision.REV0),
        (0xFFFF, SpecRevision.REV0),
    ])
    def test_resolve(self, code, expected):
        """Test high-byte resolution with the 0x0201 special case."""
        assert resolve_revision(code) is expected

    def test_filenames(self):
        """Test spec document names per revision."""
        assert SpecRevision.REV0.filename == 'segy_rev0_spec.json'
        assert SpecRevision.REV2_1.filename == 'segy_rev2_1_spec.json'

    def test_unknown_extends_reference(self):
        """Test unknown parent names are configuration errors."""
        with pytest.raises(SpecConfigError):
            SpecRevision.from_name('rev9')


class TestBundledSpecs:
    """Tests for the spec documents shipped with the package."""

    def test_rev0_binary_fields(self):
        """Test Rev 0 binary table starts with job id at 3201-3204."""
        registry = FormatSpecRegistry()
        spec = registry.load(0)
        job_id = spec.binary_header.get_field('job_id')
        assert job_id is not None
        assert (job_id.byte_start, job_id.byte_end) == (3201, 3204)
        assert job_id.data_type == 'int32'
        assert job_id.byte_size == 4
        assert spec.binary_header.byte_offset == 3200
        assert spec.binary_header.size == 400

    def test_rev0_code_mapping(self):
        """Test coded fields carry labels."""
        spec = FormatSpecRegistry().load(0)
        fmt = spec.binary_header.get_field('data_sample_format')
        assert fmt.label_for(1) == 'IBM Float32'
        assert fmt.label_for(5) is None

    def test_rev0_has_no_rev1_fields(self):
        """Test Rev 0 trace table stops before byte 181."""
        spec = FormatSpecRegistry().load(0)
        assert spec.trace_header.get_field('cdp_x') is None
        assert max(f.byte_end for f in spec.get_trace_header_fields()) <= 180

    def test_rev1_adds_and_overrides(self):
        """Test Rev 1 adds 181-240 fields and extends the format mapping."""
        spec = FormatSpecRegistry().load(0x0100)
        cdp_x = spec.trace_header.get_field('cdp_x')
        assert (cdp_x.byte_start, cdp_x.byte_end) == (181, 184)
        inline = spec.trace_header.get_field('inline_number')
        assert inline.byte_start == 189

        fmt = spec.binary_header.get_field('data_sample_format')
        assert fmt.label_for(5) == 'IEEE Float32'
        assert fmt.label_for(8) is not None

        keys = [f.field_key for f in spec.get_binary_header_fields()]
        assert keys.count('data_sample_format') == 1
        assert 'segy_revision' in keys

    def test_rev1_override_keeps_position(self):
        """Test an override replaces the field in place rather than appending."""
        rev0 = FormatSpecRegistry().load(0)
        rev1 = FormatSpecRegistry().load(0x0100)
        keys0 = [f.field_key for f in rev0.get_binary_header_fields()]
        keys1 = [f.field_key for f in rev1.get_binary_header_fields()]
        assert keys1.index('data_sample_format') == keys0.index('data_sample_format')

    def test_rev2_1_relocates_fields(self):
        """Test Rev 2.1 overrides relocate fields while untouched ones keep Rev 2."""
        registry = FormatSpecRegistry()
        rev2 = registry.load(0x0200)
        rev21 = registry.load(0x0201)

        assert rev2.binary_header.get_field('time_basis_code').byte_start == 3509
        assert rev21.binary_header.get_field('time_basis_code').byte_start == 3511

        max_headers = rev21.binary_header.get_field('max_additional_trace_headers')
        assert (max_headers.byte_start, max_headers.byte_end) == (3507, 3510)
        assert max_headers.data_type == 'int32'

        for key in ('job_id', 'segy_major_revision', 'data_sample_format'):
            assert rev21.binary_header.get_field(key) == rev2.binary_header.get_field(key)
        assert rev21.trace_header.get_field('trace_header_name') == \
            rev2.trace_header.get_field('trace_header_name')

    def test_field_ranges_inside_sections(self):
        """Test every bundled field fits inside its section."""
        registry = FormatSpecRegistry()
        for code in (0, 0x0100, 0x0200, 0x0201):
            spec = registry.load(code)
            for f in spec.get_binary_header_fields():
                assert 3201 <= f.byte_start <= f.byte_end <= 3600, f.field_key
            for f in spec.get_trace_header_fields():
                assert 1 <= f.byte_start <= f.byte_end <= 240, f.field_key

    def test_module_level_queries(self):
        """Test get_binary_header_spec / get_trace_header_spec shortcuts."""
        binary = get_binary_header_spec(0x0100)
        trace = get_trace_header_spec(0x0100)
        assert any(f.field_key == 'segy_revision' for f in binary)
        assert any(f.field_key == 'cdp_y' for f in trace)


class TestMergeSpec:
    """Tests for applying patch documents."""

    def test_additive_fields_and_overrides(self):
        """Test fields append and overrides replace by key."""
        parent = {
            'version': 'base',
            'binary_header': {'size': 400, 'byte_offset': 3200,
                              'fields': [_field('a', 3201, 3202), _field('b', 3203, 3204)]},
            'trace_header': {'size': 240, 'fields': [_field('t', 1, 4, 'int32')]},
        }
        patch = {
            'version': 'patch',
            'extends': 'rev0',
            'binary_header': {
                'fields': [_field('c', 3205, 3206)],
                'overrides': [_field('a', 3207, 3210, 'int32'), _field('z', 3211, 3212)],
            },
        }
        merged = merge_spec(parent, patch)

        keys = [f['field_key'] for f in merged['binary_header']['fields']]
        assert keys == ['a', 'b', 'c', 'z']
        assert merged['binary_header']['fields'][0]['byte_start'] == 3207
        assert merged['binary_header']['byte_offset'] == 3200
        assert merged['trace_header'] == parent['trace_header']
        assert merged['version'] == 'patch'
        # inputs untouched
        assert parent['binary_header']['fields'][0]['byte_start'] == 3201

    def test_scalar_override(self):
        """Test size and byte_offset in a patch replace the parent's."""
        parent = {'binary_header': {'size': 400, 'byte_offset': 3200, 'fields': []},
                  'trace_header': {'size': 240, 'fields': []}}
        merged = merge_spec(parent, {'trace_header': {'size': 480}})
        assert merged['trace_header']['size'] == 480

    def test_override_without_key(self):
        """Test overrides must name a field_key."""
        parent = {'binary_header': {'size': 400, 'byte_offset': 3200, 'fields': []},
                  'trace_header': {'size': 240, 'fields': []}}
        with pytest.raises(SpecConfigError):
            merge_spec(parent, {'binary_header': {'overrides': [{'name': 'x'}]}})


class TestRegistry:
    """Tests for FormatSpecRegistry with custom spec directories."""

    def _write(self, directory, name, doc):
        (directory / name).write_text(json.dumps(doc))

    def test_cache_returns_same_object(self):
        """Test tables are built once per revision."""
        registry = FormatSpecRegistry()
        assert registry.load(0x0100) is registry.load(0x0101)
        registry.clear_cache()
        assert registry.load(0x0100) is not None

    def test_cyclic_extends(self, temp_dir):
        """Test a cycle in extends chains is detected."""
        self._write(temp_dir, 'segy_rev1_spec.json', {'extends': 'rev2'})
        self._write(temp_dir, 'segy_rev2_spec.json', {'extends': 'rev1'})
        registry = FormatSpecRegistry(temp_dir)
        with pytest.raises(SpecConfigError, match="Cyclic"):
            registry.load(0x0100)

    def test_missing_base_fields(self, temp_dir):
        """Test a non-extending document without fields is rejected."""
        self._write(temp_dir, 'segy_rev0_spec.json', {
            'binary_header': {'size': 400, 'byte_offset': 3200},
            'trace_header': {'size': 240, 'fields': []},
        })
        with pytest.raises(SpecConfigError):
            FormatSpecRegistry(temp_dir).load(0)

    def test_missing_document(self, temp_dir):
        """Test a missing spec file is a configuration error."""
        with pytest.raises(SpecConfigError):
            FormatSpecRegistry(temp_dir).load(0)

    def test_malformed_json(self, temp_dir):
        """Test unparseable JSON is a configuration error."""
        (temp_dir / 'segy_rev0_spec.json').write_text('{not json')
        with pytest.raises(SpecConfigError):
            FormatSpecRegistry(temp_dir).load(0)

    def test_bad_field_entry(self):
        """Test field entries without a byte range are rejected."""
        with pytest.raises(SpecConfigError):
            HeaderFieldSpec.from_dict({'name': 'x', 'field_key': 'x', 'data_type': 'int16'})

    def test_field_round_trip(self):
        """Test to_dict keeps the document layout."""
        entry = _field('job_id', 3201, 3204, 'int32')
        entry['code_mapping'] = {'1': 'One'}
        spec = HeaderFieldSpec.from_dict(entry)
        assert HeaderFieldSpec.from_dict(spec.to_dict()) == spec
