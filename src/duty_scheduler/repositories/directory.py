from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.models.directory import Department, Location, Member
from duty_scheduler.schemas.directory import (
    DepartmentCreate,
    LocationCreate,
    LocationUpdate,
    MemberCreate,
    MemberUpdate,
)


async def list_departments(session: AsyncSession) -> list[Department]:
    result = await session.execute(select(Department).order_by(Department.id))
    return list(result.scalars().all())


async def create_department(session: AsyncSession, payload: DepartmentCreate) -> Department:
    department = Department(**payload.model_dump())
    session.add(department)
    await session.flush()
    await session.refresh(department)
    return department


async def get_department(session: AsyncSession, department_id: int) -> Department | None:
    return await session.get(Department, department_id)


async def list_members(session: AsyncSession, member_ids: list[int] | None = None) -> list[Member]:
    query = select(Member).order_by(Member.id)
    if member_ids is not None:
        query = query.where(Member.id.in_(member_ids))
    result = await session.execute(query)
    return list(result.scalars().all())


async def create_member(session: AsyncSession, payload: MemberCreate) -> Member:
    member = Member(**payload.model_dump())
    session.add(member)
    await session.flush()
    await session.refresh(member)
    return member


async def get_member(session: AsyncSession, member_id: int) -> Member | None:
    return await session.get(Member, member_id)


async def update_member(session: AsyncSession, member: Member, payload: MemberUpdate) -> Member:
    data = payload.model_dump(exclude_unset=True)
    for field, value in data.items():
        setattr(member, field, value)
    await session.flush()
    await session.refresh(member)
    return member


async def list_locations(session: AsyncSession, *, active_only: bool = False) -> list[Location]:
    query = select(Location).order_by(Location.id)
    if active_only:
        query = query.where(Location.is_active.is_(True))
    result = await session.execute(query)
    return list(result.scalars().all())


async def _clear_default_location(session: AsyncSession, keep_id: int | None = None) -> None:
    query = update(Location).where(Location.is_default.is_(True))
    if keep_id is not None:
        query = query.where(Location.id != keep_id)
    await session.execute(query.values(is_default=False))


async def create_location(session: AsyncSession, payload: LocationCreate) -> Location:
    if payload.is_default:
        await _clear_default_location(session)
    location = Location(**payload.model_dump())
    session.add(location)
    await session.flush()
    await session.refresh(location)
    return location


async def get_location(session: AsyncSession, location_id: int) -> Location | None:
    return await session.get(Location, location_id)


async def update_location(session: AsyncSession, location: Location, payload: LocationUpdate) -> Location:
    data = payload.model_dump(exclude_unset=True)
    if data.get("is_default"):
        await _clear_default_location(session, keep_id=location.id)
    for field, value in data.items():
        setattr(location, field, value)
    await session.flush()
    await session.refresh(location)
    return location


async def get_default_location(session: AsyncSession) -> Location | None:
    """Active default location, falling back to the lowest-id active one."""

    result = await session.execute(
        select(Location)
        .where(Location.is_active.is_(True))
        .order_by(Location.is_default.desc(), Location.id.asc())
    )
    return result.scalars().first()
