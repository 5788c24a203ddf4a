from fastapi import APIRouter, Depends

from tribes_api.app.common.auth import pub_key_context
from tribes_api.handlers import ChannelHandler, get_channel_handler
from tribes_api.schemas import ChannelIn, ChannelRecord

router = APIRouter(tags=["channels"])


@router.post("/channel", response_model=ChannelRecord)
def create_channel(
    payload: ChannelIn,
    pubkey: str = Depends(pub_key_context),
    ch: ChannelHandler = Depends(get_channel_handler),
):
    return ch.create_channel(payload, pubkey)


@router.delete("/channel/{channel_id}")
def delete_channel(
    channel_id: int,
    pubkey: str = Depends(pub_key_context),
    ch: ChannelHandler = Depends(get_channel_handler),
):
    return ch.delete_channel(channel_id, pubkey)
