from sqlalchemy import Column, ForeignKey, Integer, String, create_engine
from sqlalchemy.orm import Session, declarative_base, relationship

from graphql_queryable import QueryableSchema, execute_graphql


Base = declarative_base()


class Animal(Base):
    __tablename__ = "animal"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("animal.id"))
    parent = relationship("Animal", remote_side=[id])


engine = create_engine("<connection string>")
session = Session(engine)

# Declare one GraphQL type per mapped class, and the root queries over the session.
schema = QueryableSchema(lambda: session)
schema.add_type(Animal).add_all_fields()
schema.add_query("animals", Animal, lambda db: db.query(Animal).order_by(lambda a: a.name))
schema.add_query_with_args(
    "animalsNamed",
    Animal,
    {"name": ""},
    lambda args: lambda db: db.query(Animal).where(lambda a: a.name == args["name"]),
)
schema.complete()

# Write GraphQL query.
graphql_query = """
{
    animals {
        name
        parent {
            name
        }
    }
}
"""

# Compose and execute query.
query_results = execute_graphql(schema, graphql_query)["animals"]
