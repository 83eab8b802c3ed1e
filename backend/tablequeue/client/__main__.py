from tablequeue.client.cli import main

main()
