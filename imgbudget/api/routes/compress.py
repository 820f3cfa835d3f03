"""Compress API endpoint."""

import asyncio
import base64
import logging
import time
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

from imgbudget.api.config import CompressionConfig, EncodingFormat, PixelConfig, settings
from imgbudget.api.models import CompressRequest, CompressResponse
from imgbudget.core.cache import CacheService
from imgbudget.core.codec import ImageSource
from imgbudget.core.compressor import ImageCompressor
from imgbudget.core.errors import EncodingFailedError, InvalidImageError

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

router = APIRouter(prefix="/api/v1")

_cache_service = CacheService(max_size_mb=settings.cache_l1_size_mb)


def get_cache_service() -> CacheService:
    """Get the shared response cache."""
    return _cache_service


def get_default_config() -> CompressionConfig:
    """Build the default compression config from service settings."""
    return settings.compression_config()


async def process_compress_request(
    content: bytes,
    filename: str,
    params: CompressRequest,
    config: CompressionConfig,
    cache_service: CacheService,
    start_time: float,
) -> Response:
    """Core compress processing logic."""
    watermark = params.to_watermark()

    cache_key = cache_service.generate_cache_key(content, config, watermark)
    cached_result = await cache_service.get(cache_key)
    if cached_result:
        cached_result["cache_hit"] = True
        logger.info(f"Cache hit for {cache_key}")
        _check_budget(cached_result, params.strict)
        return _format_response(cached_result, params.output)

    logger.info(f"Cache miss for {cache_key}, compressing {filename}")

    compressor = ImageCompressor(config)
    source = ImageSource.from_bytes(content, filename)
    result = await run_in_threadpool(compressor.compress_to_bytes, source, watermark)

    response_data = CompressResponse(
        data=base64.b64encode(result.data).decode("utf-8"),
        format=result.format.value,
        mime_type=result.format.mime_type,
        width=result.width,
        height=result.height,
        quality=result.quality,
        size_bytes=result.size_bytes,
        budget_bytes=result.budget_bytes,
        budget_met=result.budget_met,
        iterations=result.iterations,
        original_size_bytes=result.original_size,
        cache_hit=False,
        processing_ms=int((time.time() - start_time) * 1000),
    ).model_dump()

    await cache_service.set(cache_key, response_data)

    _check_budget(response_data, params.strict)
    return _format_response(response_data, params.output)


@router.post("/compress")
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
@limiter.limit(f"{settings.rate_limit_per_hour}/hour")
async def compress_image(
    request: Request,
    file: UploadFile = File(..., description="Image to compress"),
    max_width: Optional[float] = Query(default=None, gt=0, description="Maximum width"),
    max_height: Optional[float] = Query(default=None, gt=0, description="Maximum height"),
    max_size_kb: Optional[int] = Query(default=None, gt=0, description="Byte budget in KB"),
    format: Optional[EncodingFormat] = Query(default=None, description="Output format"),
    pixel_config: Optional[PixelConfig] = Query(default=None, description="Pixel layout"),
    quality: Optional[int] = Query(default=None, ge=0, le=100, description="Starting quality"),
    output: Literal["base64", "json", "binary"] = Query(
        default="json", description="Response format"
    ),
    strict: bool = Query(default=False, description="Fail when the budget cannot be met"),
    watermark_text: Optional[str] = Query(default=None, description="Watermark text"),
    watermark_size: int = Query(default=24, ge=1, le=512, description="Watermark size (px)"),
    watermark_color: str = Query(default="#FFFFFFFF", description="Watermark colour #AARRGGBB"),
    watermark_left: int = Query(default=0, ge=0, description="Watermark left offset (px)"),
    watermark_top: int = Query(default=0, ge=0, description="Watermark top offset (px)"),
    default_config: CompressionConfig = Depends(get_default_config),
    cache_service: CacheService = Depends(get_cache_service),
) -> Response:
    """
    Compress an uploaded image to fit a byte budget.

    Returns JSON with metadata, a base64 data URI, or the binary image
    based on the output parameter.
    """
    start_time = time.time()

    try:
        params = CompressRequest(
            max_width=max_width,
            max_height=max_height,
            max_size_kb=max_size_kb,
            format=format,
            pixel_config=pixel_config,
            quality=quality,
            output=output,
            strict=strict,
            watermark_text=watermark_text,
            watermark_size=watermark_size,
            watermark_color=watermark_color,
            watermark_left=watermark_left,
            watermark_top=watermark_top,
        )
        config = params.to_config(default_config)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Upload exceeds {settings.max_upload_size_mb}MB limit",
        )

    try:
        return await asyncio.wait_for(
            process_compress_request(
                content=content,
                filename=file.filename or "image",
                params=params,
                config=config,
                cache_service=cache_service,
                start_time=start_time,
            ),
            timeout=settings.request_timeout_seconds,
        )

    except asyncio.TimeoutError:
        logger.error(f"Request timeout after {settings.request_timeout_seconds}s")
        raise HTTPException(
            status_code=504,
            detail=f"Request timeout: processing took longer than {settings.request_timeout_seconds}s",
        )

    except InvalidImageError as e:
        logger.error(f"Invalid image: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    except EncodingFailedError as e:
        logger.error(f"Encoding failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    except HTTPException:
        raise

    except Exception as e:
        logger.error(f"Unexpected error compressing image: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


def _check_budget(data: dict[str, object], strict: bool) -> None:
    if strict and not data["budget_met"]:
        raise HTTPException(
            status_code=422,
            detail=(
                f"Budget unattainable: smallest encoding is {data['size_bytes']} bytes, "
                f"budget is {data['budget_bytes']} bytes"
            ),
        )


def _format_response(data: dict[str, object], output: str) -> Response:
    """
    Format response based on output type.

    Args:
        data: Response data dictionary
        output: Output format ('base64', 'json', 'binary')

    Returns:
        Formatted response
    """
    if output == "json":
        return JSONResponse(content=data)

    elif output == "base64":
        data_uri = f"data:{data['mime_type']};base64,{data['data']}"
        return PlainTextResponse(content=data_uri)

    elif output == "binary":
        binary_data = base64.b64decode(str(data["data"]))
        return Response(
            content=binary_data,
            media_type=str(data["mime_type"]),
            headers={
                "Content-Length": str(len(binary_data)),
                "X-Budget-Met": "true" if data["budget_met"] else "false",
                "X-Quality": str(data["quality"]),
            },
        )

    else:
        raise HTTPException(status_code=400, detail=f"Invalid output format: {output}")


@router.get("/health")
async def health_check(
    cache_service: CacheService = Depends(get_cache_service),
) -> JSONResponse:
    """
    Health check endpoint.

    Reports response cache status.
    """
    checks: dict[str, dict[str, object]] = {}
    overall_status = "healthy"

    try:
        cache_size_mb = cache_service.l1_cache.current_size / (1024 * 1024)
        checks["l1_cache"] = {
            "status": "healthy",
            "size_mb": round(cache_size_mb, 2),
            "entries": len(cache_service.l1_cache),
        }
    except Exception as e:
        checks["l1_cache"] = {"status": "unhealthy", "error": str(e)}
        overall_status = "degraded"

    return JSONResponse(
        content={
            "status": overall_status,
            "checks": checks,
        }
    )
