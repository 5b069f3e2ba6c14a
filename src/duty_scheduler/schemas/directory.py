from pydantic import BaseModel, ConfigDict, Field


class DepartmentBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    is_active: bool = True


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentRead(DepartmentBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class MemberBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    student_id: str = Field(min_length=1, max_length=32)
    department_id: int | None = None
    role: str = "member"


class MemberCreate(MemberBase):
    pass


class MemberUpdate(BaseModel):
    name: str | None = None
    department_id: int | None = None
    role: str | None = None


class MemberRead(MemberBase):
    id: int
    department_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class MemberBrief(BaseModel):
    id: int
    name: str
    student_id: str
    department_id: int | None = None
    department_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class LocationBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    address: str | None = None
    is_default: bool = False
    is_active: bool = True


class LocationCreate(LocationBase):
    pass


class LocationUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    is_default: bool | None = None
    is_active: bool | None = None


class LocationRead(LocationBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class LocationBrief(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)
