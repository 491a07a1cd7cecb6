from sqlalchemy.orm import Session

from exam_portal.models.material import Material, MaterialCategory
from exam_portal.schemas.materials import MaterialIn, MaterialUpdate


class MaterialService:
    def __init__(self, db: Session):
        self.db = db

    # ---------- Categories ----------

    def list_categories(self) -> list[MaterialCategory]:
        return self.db.query(MaterialCategory).order_by(MaterialCategory.name).all()

    def get_category(self, category_id: str) -> MaterialCategory | None:
        return self.db.query(MaterialCategory).filter(MaterialCategory.id == category_id).one_or_none()

    def create_category(self, name: str, description: str | None = None) -> MaterialCategory:
        category = MaterialCategory(name=name, description=description)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category: MaterialCategory) -> None:
        # Materials keep existing, they just lose their category
        self.db.query(Material).filter(Material.category_id == category.id).update(
            {Material.category_id: None}, synchronize_session=False
        )
        self.db.delete(category)
        self.db.commit()

    # ---------- Materials ----------

    def get(self, material_id: str) -> Material | None:
        return self.db.query(Material).filter(Material.id == material_id).one_or_none()

    def list_published(self) -> list[tuple[Material, MaterialCategory | None]]:
        materials = (
            self.db.query(Material)
            .filter(Material.status == "published")
            .order_by(Material.created_at.desc())
            .all()
        )
        return self._with_categories(materials)

    def list_all(self) -> list[tuple[Material, MaterialCategory | None]]:
        materials = self.db.query(Material).order_by(Material.created_at.desc()).all()
        return self._with_categories(materials)

    def create(self, payload: MaterialIn) -> Material:
        material = Material(**payload.model_dump())
        self.db.add(material)
        self.db.commit()
        self.db.refresh(material)
        return material

    def update(self, material: Material, payload: MaterialUpdate) -> Material:
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(material, field, value)
        self.db.add(material)
        self.db.commit()
        self.db.refresh(material)
        return material

    def delete(self, material: Material) -> None:
        self.db.delete(material)
        self.db.commit()

    def _with_categories(self, materials: list[Material]) -> list[tuple[Material, MaterialCategory | None]]:
        category_ids = {m.category_id for m in materials if m.category_id}
        categories = {}
        if category_ids:
            categories = {
                c.id: c for c in self.db.query(MaterialCategory).filter(MaterialCategory.id.in_(category_ids)).all()
            }
        return [(m, categories.get(m.category_id)) for m in materials]

    @staticmethod
    def to_dict(material: Material, category: MaterialCategory | None) -> dict:
        return {
            "id": material.id,
            "title": material.title,
            "description": material.description,
            "tags": material.tags or [],
            "pdf_url": material.pdf_url,
            "category_id": material.category_id,
            "associated_test_id": material.associated_test_id,
            "status": material.status,
            "created_at": material.created_at.isoformat() if material.created_at else None,
            "category": {"id": category.id, "name": category.name, "description": category.description} if category else None,
        }
