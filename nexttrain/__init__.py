"""NextTrain - nearest TRA departures from daily PTX timetables."""

__version__ = "1.0.0"
