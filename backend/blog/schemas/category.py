from datetime import datetime
from typing import List
from .base import ApiModel


class Category(ApiModel):
    id: str
    name: str
    slug: str
    created_at: datetime


class CategoryWithCount(Category):
    post_count: int = 0


class CategoryList(ApiModel):
    categories: List[CategoryWithCount]


class CategoryEnvelope(ApiModel):
    category: Category
