"""FastAPI routes for voice commands and ElevenLabs speech."""

import base64
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ..chat.command_dispatcher import CommandDispatcher
from ..tools.errors import InvalidRequest, VoiceCommandError
from ..tools.models import (
    CommandRequest,
    CommandResponse,
    EnhancedCommandRequest,
    EnhancedCommandResponse,
    StreamTTSRequest,
    WebhookRequest,
    WebhookResponse,
)
from ..tools.speech import ElevenLabsSynthesizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["commands"])


def get_dispatcher(request: Request) -> CommandDispatcher:
    return request.app.state.dispatcher


def get_synthesizer(dispatcher: CommandDispatcher = Depends(get_dispatcher)) -> ElevenLabsSynthesizer:
    if dispatcher.synthesizer is None:
        raise InvalidRequest("ElevenLabs service not configured")
    return dispatcher.synthesizer


# --- POST /api/process-command ---

@router.post("/process-command", response_model=CommandResponse)
async def process_command(
    req: CommandRequest,
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
):
    result = await dispatcher.handle(req)
    return CommandResponse(response=result.response, user_id=result.user_id)


# --- POST /api/process-command-enhanced ---

@router.post("/process-command-enhanced", response_model=EnhancedCommandResponse)
async def process_command_enhanced(
    req: EnhancedCommandRequest,
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
):
    result = await dispatcher.handle(req)
    synthesis = result.synthesis

    audio_b64 = None
    if synthesis is not None and synthesis.succeeded:
        audio_b64 = base64.b64encode(synthesis.audio).decode("utf-8")

    return EnhancedCommandResponse(
        response=result.response,
        audio=audio_b64,
        user_id=result.user_id,
        voice_used=synthesis.voice_id if synthesis is not None else dispatcher.voice_for(req.voice_id),
    )


# --- GET /api/voices ---

@router.get("/voices")
async def list_voices(synthesizer: ElevenLabsSynthesizer = Depends(get_synthesizer)):
    return await synthesizer.list_voices()


# --- POST /api/stream-tts ---

@router.post("/stream-tts")
async def stream_tts(
    req: StreamTTSRequest,
    synthesizer: ElevenLabsSynthesizer = Depends(get_synthesizer),
):
    text = (req.text or "").strip()
    if not text:
        raise InvalidRequest("Text is required")

    chunks = synthesizer.synthesize_stream(text, req.voice_id)
    # Pull the first chunk here so upstream failures still get an error status.
    try:
        first_chunk = await anext(chunks)
    except StopAsyncIteration:
        first_chunk = b""

    async def body():
        if first_chunk:
            yield first_chunk
        async for chunk in chunks:
            yield chunk

    return StreamingResponse(body(), media_type="audio/mpeg")


# --- POST /api/elevenlabs-webhook ---

@router.post("/elevenlabs-webhook", response_model=WebhookResponse)
async def elevenlabs_webhook(
    req: WebhookRequest,
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
):
    try:
        result = await dispatcher.handle(CommandRequest(message=req.text, user_id=req.user_id))
    except VoiceCommandError as e:
        logger.exception("Webhook error: %s", e)
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})
    return WebhookResponse(response_text=result.response)
