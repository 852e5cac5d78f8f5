from .execution_repository_impl import SqlAlchemyExecutionRepository

__all__ = ["SqlAlchemyExecutionRepository"]
