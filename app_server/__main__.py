from app_server.cli import main

main()
