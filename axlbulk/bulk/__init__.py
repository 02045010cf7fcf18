"""
Modo bulk: templates XML con registros CSV
"""
from .csv_handler import CsvHandler, read_csv
from .pipeline import BulkRunner, RecordResult

__all__ = ['CsvHandler', 'read_csv', 'BulkRunner', 'RecordResult']
