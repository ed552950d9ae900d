from __future__ import annotations

from typing import Optional

from app.schemas.sale_schemas import BaseSchema


class CompanySetupDTO(BaseSchema):
    name: str
    whatsapp_number: Optional[str] = None
    initial_branch_name: Optional[str] = None
    navbar_title: Optional[str] = None
    navbar_icon_url: Optional[str] = None
    store_title_1: Optional[str] = None
    store_title_2: Optional[str] = None
    store_subtitle: Optional[str] = None


class CompanyUpdateDTO(BaseSchema):
    name: Optional[str] = None
    whatsapp_number: Optional[str] = None
    navbar_title: Optional[str] = None
    navbar_icon_url: Optional[str] = None
    store_title_1: Optional[str] = None
    store_title_2: Optional[str] = None
    store_subtitle: Optional[str] = None


class BranchDTO(BaseSchema):
    name: str
    address: str = ""


class BranchUpdateDTO(BaseSchema):
    name: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryDTO(BaseSchema):
    name: str
