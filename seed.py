from app import create_app
from config import Config
from models import db
from models.user import User, UserRole
from services.settings import ensure_default_settings


class SeedConfig(Config):
    SYNC_AUTOSTART = False


def run():
    app = create_app(SeedConfig)
    with app.app_context():
        # ✅ Importante:
        # No usamos db.create_all() porque ya estamos trabajando con migraciones (Flask-Migrate).
        # Asegúrate de haber corrido: flask db upgrade

        # 1) Usuario admin
        user = db.session.query(User).filter_by(username="admin").first()
        if not user:
            user = User(username="admin", full_name="Administrador", role=UserRole.ADMIN, is_active=True)
            user.set_password("admin123")
            db.session.add(user)
        else:
            # Opcional: asegura que esté activo
            user.is_active = True
            user.role = UserRole.ADMIN
        db.session.commit()

        # 2) Ajustes por defecto (incluye sync remoto deshabilitado)
        added = ensure_default_settings(db.session)

        print("✅ Seed listo.")
        print("Login: admin / admin123")
        print(f"Ajustes nuevos: {added}")


if __name__ == "__main__":
    run()
