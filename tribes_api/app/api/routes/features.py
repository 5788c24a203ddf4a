from typing import List

from fastapi import APIRouter, Depends

from tribes_api.app.common.auth import pub_key_context
from tribes_api.handlers import FeatureHandler, get_feature_handler
from tribes_api.schemas import FeatureIn, FeatureRecord

# every feature route needs an authenticated caller
router = APIRouter(tags=["features"])


@router.post("/features", response_model=FeatureRecord)
def create_or_edit_feature(
    payload: FeatureIn,
    pubkey: str = Depends(pub_key_context),
    fh: FeatureHandler = Depends(get_feature_handler),
):
    return fh.create_or_edit_feature(payload, pubkey)


@router.get("/features/forworkspace/{workspace_uuid}", response_model=List[FeatureRecord])
def get_features_for_workspace_legacy(
    workspace_uuid: str,
    pubkey: str = Depends(pub_key_context),
    fh: FeatureHandler = Depends(get_feature_handler),
):
    return fh.get_features_for_workspace(workspace_uuid)


@router.get("/workspaces/{workspace_uuid}/features", response_model=List[FeatureRecord])
def get_features_for_workspace(
    workspace_uuid: str,
    pubkey: str = Depends(pub_key_context),
    fh: FeatureHandler = Depends(get_feature_handler),
):
    return fh.get_features_for_workspace(workspace_uuid)


@router.get("/features/{uuid}", response_model=FeatureRecord)
def get_feature(
    uuid: str,
    pubkey: str = Depends(pub_key_context),
    fh: FeatureHandler = Depends(get_feature_handler),
):
    return fh.get_feature(uuid)


@router.delete("/features/{uuid}")
def delete_feature(
    uuid: str,
    pubkey: str = Depends(pub_key_context),
    fh: FeatureHandler = Depends(get_feature_handler),
):
    return fh.delete_feature(uuid)
