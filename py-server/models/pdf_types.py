"""
Pydantic models for the PDF Page Extraction API
Field names are camelCase to match the JSON the consumers read.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Literal, Union

from models.shape_types import ExtractedImage, PageRecord
from utils.image_encoding import to_data_uri


class PageProgress(BaseModel):
    """Progress after a page has been fully handled; page/totalPages are range-relative"""
    page: int = Field(..., ge=1)
    totalPages: int = Field(..., ge=1)
    label: str


class ExtractedImageResponse(BaseModel):
    """One extracted image, optionally with its PNG as a base64 data URI"""
    imageId: str
    widthPx: int
    heightPx: int
    hash: str
    isPruned: bool = False
    data: Optional[str] = None

    @classmethod
    def from_image(cls, image: ExtractedImage, include_image_data: bool = False) -> 'ExtractedImageResponse':
        return cls(
            imageId=image.image_id,
            widthPx=image.width_px,
            heightPx=image.height_px,
            hash=image.content_hash,
            isPruned=image.is_pruned,
            data=to_data_uri(image.png_bytes) if include_image_data else None,
        )


class PageRecordResponse(BaseModel):
    """Everything extracted from one page"""
    pageId: str
    pageNumber: int
    rawText: str
    pageImage: ExtractedImageResponse
    images: List[ExtractedImageResponse] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: PageRecord, include_image_data: bool = False) -> 'PageRecordResponse':
        return cls(
            pageId=record.page_id,
            pageNumber=record.page_number,
            rawText=record.raw_text,
            pageImage=ExtractedImageResponse.from_image(record.page_image, include_image_data),
            images=[ExtractedImageResponse.from_image(img, include_image_data) for img in record.images],
        )


class ExtractPdfPagesResponse(BaseModel):
    """Response of the synchronous page extraction endpoint"""
    label: str
    totalPages: int = Field(..., description="Number of pages in the selected range")
    pages: List[PageRecordResponse] = Field(..., description="Page records in page order")


# Streaming events (one JSON object per line)
class ProgressEvent(PageProgress):
    type: Literal["progress"] = "progress"


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    label: str
    pageCount: int


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str
    detail: Optional[str] = None


StreamEvent = Union[ProgressEvent, CompleteEvent, ErrorEvent]


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    detail: Optional[str] = None


# Configuration models
class PdfPageExtractionOptions(BaseModel):
    """Request options for page extraction"""
    start_page: int = Field(1, ge=1, description="First page to extract (1-based)")
    end_page: Optional[int] = Field(None, ge=1, description="Last page to extract (inclusive); defaults to the last page")
    include_image_data: bool = Field(False, description="If true, embed base64 PNG data URIs in the response")
