from cluster_mover import run

if __name__ == "__main__":
    run()
