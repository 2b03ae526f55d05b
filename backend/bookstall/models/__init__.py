from .catalog import Author, Language, Category, Donor, BookTitle, BookCopy, BookCondition, CatalogSequence
from .sales import Sale, SaleItem

__all__ = [
    'Author', 'Language', 'Category',
    'Donor', 'BookTitle', 'BookCopy', 'BookCondition', 'CatalogSequence',
    'Sale', 'SaleItem',
]
