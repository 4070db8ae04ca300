"""存储/文件上传相关路由。"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    UploadFile,
    status,
)
from fastapi.responses import Response

from api.dependencies import get_storage_service
from application.dto import (
    CollectionFileRecordDTO,
    FileMetadataDTO,
    ObjectURLsDTO,
    StorageCheckDTO,
    StorageInfoDTO,
    StorageUploadResponseDTO,
    UploadCredentialDTO,
    UploadURLRequestDTO,
)
from application.services.storage_service import StorageApplicationService
from core.response import (
    Response as ApiResponse,
    success_response,
)
from domain.common.exceptions import MissingFileException
from infrastructure.external.storage import detect_content_type


router = APIRouter(
    prefix="/storage",
    tags=["文件存储"],
)


@router.get(
    "/info",
    summary="存储后端信息",
    response_model=ApiResponse[StorageInfoDTO],
)
async def storage_info(
    service: StorageApplicationService = Depends(get_storage_service),
):
    """Tell clients whether to upload directly or through the server."""
    return success_response(data=service.info())


@router.get(
    "/check",
    summary="存储配置检查",
    response_model=ApiResponse[StorageCheckDTO],
)
async def storage_check(
    service: StorageApplicationService = Depends(get_storage_service),
):
    return success_response(data=service.check())


@router.post(
    "/upload",
    summary="中转上传单个文件",
    response_model=ApiResponse[StorageUploadResponseDTO],
)
async def upload_file(
    file: UploadFile = File(..., description="要上传的文件"),
    folder: Optional[str] = Form(default=None, description="目标目录（覆盖默认前缀）"),
    service: StorageApplicationService = Depends(get_storage_service),
):
    """由应用服务器中转上传文件到存储后端。"""
    resp = await service.upload(
        file,
        filename=file.filename or None,
        content_type=file.content_type,
        folder=folder or None,
    )
    return success_response(data=resp, message="文件上传成功")


@router.post(
    "/collections/{collection_id}/files",
    summary="上传知识库文件",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[CollectionFileRecordDTO],
)
async def upload_collection_file(
    collection_id: str,
    file: Optional[UploadFile] = File(default=None, description="知识库文档"),
    service: StorageApplicationService = Depends(get_storage_service),
):
    """校验类型与大小后上传，返回待写入记录库的文件记录。"""
    if file is None:
        raise MissingFileException()

    data = await file.read()
    record = await service.upload_collection_file(
        collection_id,
        data,
        filename=file.filename or "upload.bin",
        content_type=file.content_type,
        size=len(data),
    )
    return success_response(data=record, message="知识库文件上传成功")


@router.post(
    "/upload-url",
    summary="生成直传凭证",
    response_model=ApiResponse[UploadCredentialDTO],
)
async def create_upload_url(
    payload: UploadURLRequestDTO,
    service: StorageApplicationService = Depends(get_storage_service),
):
    credential = await service.create_upload_url(
        filename=payload.filename,
        content_type=payload.content_type,
        folder=payload.folder,
        expires_in=payload.expires_in,
    )
    return success_response(data=credential, message="直传凭证生成成功")


@router.get(
    "/objects/{key:path}/metadata",
    summary="文件元数据",
    response_model=ApiResponse[FileMetadataDTO],
)
async def get_object_metadata(
    key: str,
    service: StorageApplicationService = Depends(get_storage_service),
):
    return success_response(data=await service.require_metadata(key))


@router.get(
    "/objects/{key:path}/url",
    summary="文件访问地址",
    response_model=ApiResponse[ObjectURLsDTO],
)
async def get_object_urls(
    key: str,
    service: StorageApplicationService = Depends(get_storage_service),
):
    return success_response(data=await service.resolve_urls(key))


@router.get(
    "/objects/{key:path}",
    summary="下载文件",
    response_class=Response,
)
async def download_object(
    key: str,
    service: StorageApplicationService = Depends(get_storage_service),
):
    data, metadata = await service.download(key)
    filename = key.rsplit("/", 1)[-1]
    media_type = metadata.content_type if metadata else detect_content_type(filename)
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@router.delete(
    "/objects/{key:path}",
    summary="删除文件",
    response_model=ApiResponse[dict],
)
async def delete_object(
    key: str,
    service: StorageApplicationService = Depends(get_storage_service),
):
    await service.delete(key)
    return success_response(data={"key": key, "deleted": True}, message="文件已删除")
