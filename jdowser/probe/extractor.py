"""Copy static version constants out of a runtime's version class.

Works on ``sun/misc/Version.class`` (JDK 8 and older) and
``java/lang/VersionProps.class`` (JDK 9+).
"""

from __future__ import annotations

from jdowser.classfile.parser import ConstantValueAttribute, parse_class_file
from jdowser.probe.models import VersionRecord

# lower-cased field name -> record attributes it fills
_FIELD_TARGETS: dict[str, tuple[str, ...]] = {
    "version": ("version",),
    "java_version": ("version",),
    "runtimename": ("runtime_name", "vm_name"),
    "java_runtime_name": ("runtime_name", "vm_name"),
    "vendor": ("runtime_vendor", "vm_vendor"),
    "java_vendor": ("runtime_vendor", "vm_vendor"),
    "runtimeversion": ("runtime_version", "vm_version"),
    "java_runtime_version": ("runtime_version", "vm_version"),
}


def extract_version_fields(data: bytes, record: VersionRecord) -> VersionRecord:
    """Fill ``record`` from String-valued ``ConstantValue`` fields in ``data``.

    Unknown fields are ignored and missing ones leave the record untouched.
    Raises ``ClassFormatError`` if ``data`` is not a class file.
    """
    class_file = parse_class_file(data)
    cp = class_file.constant_pool

    for f in class_file.fields:
        name = cp.utf8(f.name_index)
        if name is None:
            continue
        targets = _FIELD_TARGETS.get(name.lower())
        if not targets:
            continue
        for attr in f.attributes:
            if not isinstance(attr, ConstantValueAttribute):
                continue
            value = cp.string(attr.value_index)
            if value:
                for target in targets:
                    setattr(record, target, value)
    return record
