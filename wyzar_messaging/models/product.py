from typing import List, TypedDict


class ProductDocument(TypedDict, total=False):
    _id: str
    name: str
    images: List[str]
    price: float
