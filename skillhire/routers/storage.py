from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import FileResponse

from skillhire.services.resume_storage import SignedUrlError, resolve_path, verify_signed_token


router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/resumes", name="download_resume")
def download_resume(token: str = Query(..., min_length=1)) -> FileResponse:
    # The signed token is the only credential for this endpoint.
    try:
        resume_url = verify_signed_token(token)
        path = resolve_path(resume_url)
    except SignedUrlError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
    return FileResponse(path, filename=path.name)
