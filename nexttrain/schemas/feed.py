"""Typed view of the PTX DailyTrainTimetable payload."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _FeedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NameType(_FeedModel):
    zh_tw: str = Field("", alias="Zh_tw")
    en: Optional[str] = Field(None, alias="En")


class TrainInfo(_FeedModel):
    train_no: str = Field(alias="TrainNo")
    direction: Optional[int] = Field(None, alias="Direction")
    train_type_id: str = Field("", alias="TrainTypeID")
    train_type_code: Optional[str] = Field(None, alias="TrainTypeCode")
    train_type_name: NameType = Field(default_factory=NameType, alias="TrainTypeName")
    starting_station_id: str = Field("", alias="StartingStationID")
    starting_station_name: NameType = Field(default_factory=NameType, alias="StartingStationName")
    ending_station_id: str = Field("", alias="EndingStationID")
    ending_station_name: NameType = Field(default_factory=NameType, alias="EndingStationName")
    note: Optional[str] = Field(None, alias="Note")


class RawStopTime(_FeedModel):
    stop_sequence: int = Field(alias="StopSequence")
    station_id: str = Field(alias="StationID")
    station_name: NameType = Field(default_factory=NameType, alias="StationName")
    arrival_time: str = Field("", alias="ArrivalTime")
    departure_time: str = Field("", alias="DepartureTime")


class TrainTimetable(_FeedModel):
    train_info: TrainInfo = Field(alias="TrainInfo")
    stop_times: List[RawStopTime] = Field(default_factory=list, alias="StopTimes")


class DailyTimetable(_FeedModel):
    count: int = Field(alias="Count")
    train_date: str = Field(alias="TrainDate")  # YYYY-MM-DD
    update_time: Optional[str] = Field(None, alias="UpdateTime")
    train_timetables: List[TrainTimetable] = Field(default_factory=list, alias="TrainTimetables")
