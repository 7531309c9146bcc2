class CsvImportError(Exception):
    """A single CSV row could not be applied"""
