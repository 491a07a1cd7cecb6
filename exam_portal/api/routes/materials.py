from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from exam_portal.access import can_access_material, get_upgrade_message
from exam_portal.api.deps import access_for
from exam_portal.db.session import get_db
from exam_portal.models.user import User
from exam_portal.services.auth.tokens import get_optional_student
from exam_portal.services.materials.service import MaterialService

router = APIRouter(tags=["materials"])


@router.get("/materials")
def list_materials(
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_student),
):
    """Published materials, newest first. Locked ones come without pdf_url."""
    access = access_for(db, user)
    items = []
    for material, category in MaterialService(db).list_published():
        category_name = category.name if category else ""
        item = MaterialService.to_dict(material, category)
        locked = not can_access_material(access, material.id, category_name)
        item["locked"] = locked
        if locked:
            item.pop("pdf_url", None)
            item["upgrade_message"] = get_upgrade_message(category_name)
        items.append(item)
    return {"success": True, "materials": items}
