from app import create_app, db
from app.models import Driver, Pick, Race, RaceResult, Season, User, UserSeasonStats

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Season": Season,
        "Race": Race,
        "Driver": Driver,
        "Pick": Pick,
        "RaceResult": RaceResult,
        "UserSeasonStats": UserSeasonStats,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
