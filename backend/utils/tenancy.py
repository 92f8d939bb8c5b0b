from fastapi import Depends, Header, HTTPException

from models.users import User
from utils.auth_utils import get_current_user


def get_tenant_id(
    x_tenant_id: str = Header(...),
    current_user: User = Depends(get_current_user),
) -> str:
    if not x_tenant_id:
        raise HTTPException(status_code=400, detail="X-Tenant-ID header is missing")
    if x_tenant_id != current_user.tenant_id:
        raise HTTPException(status_code=403, detail="You do not have access to this tenant")
    return x_tenant_id
