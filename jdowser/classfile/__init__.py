"""Minimal JVM class file reader."""

from jdowser.classfile.parser import (
    ClassFile,
    ConstantPool,
    ConstantValueAttribute,
    parse_class_file,
    read_class_file,
)
from jdowser.classfile.reader import ClassFileReader

__all__ = [
    "ClassFile",
    "ClassFileReader",
    "ConstantPool",
    "ConstantValueAttribute",
    "parse_class_file",
    "read_class_file",
]
