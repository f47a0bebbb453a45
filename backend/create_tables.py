import dotenv
dotenv.load_dotenv()

from app.db.session import engine
from app.db.base import Base

# Import all models so they are registered with Base
from app.db.models import todo, task_dependency

metadata = [
    todo.Todo.__table__,
    task_dependency.TaskDependency.__table__,
]

if __name__ == "__main__":
    Base.metadata.create_all(bind=engine, tables=metadata)
    print("✅ Tables created")
