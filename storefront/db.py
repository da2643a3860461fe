from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from storefront import config  # импортируем настройки

Base = declarative_base()

engine_kwargs = {"pool_pre_ping": True}
if config.DATABASE_URL.startswith("sqlite"):
    # локальная разработка и тесты
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs.update(pool_size=10, max_overflow=20)

# Создаём engine
engine = create_engine(config.DATABASE_URL, **engine_kwargs)

# Фабрика сессий
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency для FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Создаёт таблицы для всех моделей."""
    import storefront.models  # noqa: F401
    from sqlalchemy.orm import configure_mappers

    configure_mappers()
    Base.metadata.create_all(bind=engine)
