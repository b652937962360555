from ailog_cli.main import main

main()
