from butterfly.main import run

run()
