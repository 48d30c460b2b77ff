from qrsync.cli import main

main()
