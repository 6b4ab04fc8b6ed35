from typing import List, Optional

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from pdfmerge.core.errors import MergeServiceError, ProcessingFailure
from pdfmerge.core.logging import configure_logging
from pdfmerge.models import ErrorResponse, MergeResponse
from pdfmerge.services.upload_service import receive_uploads
from pdfmerge.storage.session import upload_session

router = APIRouter(tags=["PDF Merge"])

logger = configure_logging()


@router.post(
    "/upload",
    summary="Merge the uploaded PDFs in the order they were sent",
    response_model=MergeResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_and_merge(request: Request, files: Optional[List[UploadFile]] = File(default=None)) -> dict:
    state = request.app.state
    settings = state.settings
    publisher = state.publisher

    async with upload_session(settings.sessions_dir) as session:
        try:
            uploads = await receive_uploads(
                files,
                session,
                state.storage,
                max_bytes=settings.max_file_size_bytes,
            )
            group = await publisher.open_group(session.token)
            archived = await publisher.archive_sources(group, uploads)
            result = await run_in_threadpool(state.pdf_service.merge, uploads)
            artifact = await publisher.publish(result.document, group)
        except MergeServiceError:
            raise
        except Exception as exc:
            logger.exception("Error during PDF merging process for session %s", session.token)
            raise ProcessingFailure() from exc

    logger.info(
        "Merged %s of %s files into %s (%s pages)",
        len(result.document.sources),
        len(uploads),
        artifact.filename,
        artifact.page_count,
    )

    payload = {
        "mergedFile": artifact.to_payload(),
        "skippedFiles": [error.to_payload() for error in result.errors],
    }
    if group is not None:
        payload.update(
            folderName=group.name,
            folderId=group.group_id,
            uploadedFiles=[remote.to_payload() for remote in archived],
        )
    return payload
