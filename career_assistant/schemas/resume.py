"""Schemas for the resume indexing endpoint."""

from pydantic import BaseModel, Field


class IndexResumeRequest(BaseModel):
    """Already-extracted resume text; file parsing happens upstream."""

    user_id: str = Field(..., min_length=1)
    text: str = Field(..., description="Plain resume text.")


class IndexResumeResponse(BaseModel):
    resume_id: str
    chunks_indexed: int = Field(..., description="Number of chunks embedded and stored.")
    sections: list[str] = Field(default_factory=list, description="Resume sections found, in document order.")

    model_config = {
        "json_schema_extra": {
            "examples": [{"resume_id": "r-1", "chunks_indexed": 7, "sections": ["summary", "experience", "skills"]}]
        }
    }
