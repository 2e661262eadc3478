from replica_backup.cli.main import main

main()
