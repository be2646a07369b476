"""XML source loading."""

from .xml_file import load_xml_file

__all__ = ['load_xml_file']
