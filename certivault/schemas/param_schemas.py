# -*- coding: UTF-8 -*-
"""
@File ：param_schemas.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/1 01:55
@DOC: Query parameter models
"""
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class PaginationParams(BaseModel):
    """
    Page-number pagination shared by list endpoints
    """
    model_config = ConfigDict(populate_by_name=True)

    page: Annotated[int, Field(default=1, ge=1, description="1-based page number")]
    page_size: Annotated[
        int,
        Field(default=20, ge=1, le=100, alias="pageSize", description="Number of records per page"),
    ]


class CertificateQueryParams(PaginationParams):
    student_id: Annotated[str | None, Field(default=None, alias="studentId", description="Exact student id")]
    student_name: Annotated[
        str | None, Field(default=None, alias="studentName", description="Case-insensitive name substring")
    ]
    certificate_type: Annotated[
        str | None, Field(default=None, alias="certificateType", description="Exact certificate type")
    ]
    graduation_year: Annotated[
        int | None, Field(default=None, alias="graduationYear", ge=1000, le=9999, description="Graduation year")
    ]
